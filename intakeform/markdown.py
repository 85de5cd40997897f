"""Minimal markdown-to-HTML converter for ``content`` form fields.

Handles headings, paragraphs, bold, italic, inline code, links, ordered and
unordered lists, horizontal rules, fenced code blocks and pipe tables.

The converter is line oriented and makes a single pass over the input. It
never raises: unterminated fences run to the end of the input, one-row
tables produce no markup and unmatched inline delimiters are left as text.

Output is raw markup. Text is escaped before inline formatting is applied,
but link targets are inserted as written, so callers must only feed it
trusted content.

Usage:
    >>> render_markdown("# Hi")
    '<h1 class="text-2xl font-bold text-gray-900 mt-4 mb-2">Hi</h1>'
"""

import re
from typing import Callable, List, Optional

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)")
RULE_RE = re.compile(r"-{3,}|\*{3,}")
UNORDERED_ITEM_RE = re.compile(r"^\s*[-*]\s+(.*)")
ORDERED_ITEM_RE = re.compile(r"^\s*\d+\.\s+(.*)")
TABLE_SEPARATOR_RE = re.compile(r"\|[\s:]*-+[\s:]*(\|[\s:]*-+[\s:]*)*\|")
FENCE = "```"

HEADING_CLASSES = {
    1: "text-2xl font-bold",
    2: "text-xl font-bold",
    3: "text-lg font-semibold",
    4: "text-base font-semibold",
    5: "text-sm font-semibold",
    6: "text-sm font-medium",
}

LIST_OPEN_TAGS = {
    "ul": '<ul class="list-disc list-inside space-y-1 my-2 text-gray-700">',
    "ol": '<ol class="list-decimal list-inside space-y-1 my-2 text-gray-700">',
}

# Applied in order, each to the output of the previous one
INLINE_RULES = [
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"__(.+?)__"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.+?)\*"), r"<em>\1</em>"),
    (re.compile(r"(?<!\w)_(.+?)_(?!\w)"), r"<em>\1</em>"),
    (re.compile(r"`([^`]+)`"), r'<code class="bg-gray-100 px-1 rounded text-sm">\1</code>'),
    (
        re.compile(r"\[([^\]]+)\]\(([^)]+)\)"),
        r'<a href="\2" class="text-blue-600 underline" target="_blank" rel="noopener">\1</a>',
    ),
]


def escape_html(text: str) -> str:
    """Escape the structural HTML metacharacters ``& < > "``."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def render_inline(text: str) -> str:
    """Escape ``text`` and apply bold, italic, code and link formatting."""
    result = escape_html(text)
    for pattern, replacement in INLINE_RULES:
        result = pattern.sub(replacement, result)
    return result


def is_fence(line: str) -> bool:
    return line.lstrip().startswith(FENCE)


def is_rule(line: str) -> bool:
    return RULE_RE.fullmatch(line.strip()) is not None


def is_table_row(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("|") and stripped.endswith("|")


def split_cells(row: str) -> List[str]:
    """Split a pipe table row into trimmed cell texts."""
    return [cell.strip() for cell in row.strip()[1:-1].split("|")]


def starts_block(line: str) -> bool:
    """Check whether ``line`` begins any non-paragraph block."""
    return (
        is_fence(line)
        or HEADING_RE.match(line) is not None
        or is_rule(line)
        or UNORDERED_ITEM_RE.match(line) is not None
        or ORDERED_ITEM_RE.match(line) is not None
        or is_table_row(line)
    )


class _Renderer:
    """Single-use block renderer holding the output buffer and open list."""

    def __init__(self, source: str):
        self.lines = source.split("\n")
        self.pos = 0
        self.output: List[str] = []
        self.open_list: Optional[str] = None

    def render(self) -> str:
        handlers: List[Callable[[str], bool]] = [
            self._code_block,
            self._heading,
            self._rule,
            self._list_item,
            self._blank,
            self._table,
        ]
        while self.pos < len(self.lines):
            line = self.lines[self.pos]
            if not any(handler(line) for handler in handlers):
                self._paragraph()
        self._close_list()
        return "\n".join(self.output)

    def _close_list(self) -> None:
        if self.open_list:
            self.output.append(f"</{self.open_list}>")
            self.open_list = None

    def _code_block(self, line: str) -> bool:
        if not is_fence(line):
            return False
        self._close_list()
        self.pos += 1
        code_lines: List[str] = []
        while self.pos < len(self.lines) and not is_fence(self.lines[self.pos]):
            code_lines.append(escape_html(self.lines[self.pos]))
            self.pos += 1
        # Skip the closing fence; a no-op at end of input
        self.pos += 1
        code = "\n".join(code_lines)
        self.output.append(
            '<pre class="bg-gray-100 rounded-lg p-4 text-sm overflow-x-auto my-3">'
            f"<code>{code}</code></pre>"
        )
        return True

    def _heading(self, line: str) -> bool:
        match = HEADING_RE.match(line)
        if not match:
            return False
        self._close_list()
        level = len(match.group(1))
        self.output.append(
            f'<h{level} class="{HEADING_CLASSES[level]} text-gray-900 mt-4 mb-2">'
            f"{render_inline(match.group(2))}</h{level}>"
        )
        self.pos += 1
        return True

    def _rule(self, line: str) -> bool:
        if not is_rule(line):
            return False
        self._close_list()
        self.output.append('<hr class="border-gray-200 my-4" />')
        self.pos += 1
        return True

    def _list_item(self, line: str) -> bool:
        kind = "ul"
        match = UNORDERED_ITEM_RE.match(line)
        if not match:
            kind = "ol"
            match = ORDERED_ITEM_RE.match(line)
        if not match:
            return False
        if self.open_list != kind:
            self._close_list()
            self.open_list = kind
            self.output.append(LIST_OPEN_TAGS[kind])
        self.output.append(f"<li>{render_inline(match.group(1))}</li>")
        self.pos += 1
        return True

    def _blank(self, line: str) -> bool:
        if line.strip():
            return False
        self._close_list()
        self.pos += 1
        return True

    def _table(self, line: str) -> bool:
        if not is_table_row(line):
            return False
        self._close_list()
        rows: List[str] = []
        while self.pos < len(self.lines) and is_table_row(self.lines[self.pos]):
            rows.append(self.lines[self.pos])
            self.pos += 1
        if len(rows) < 2:
            return True

        body_start = 2 if TABLE_SEPARATOR_RE.fullmatch(rows[1].strip()) else 1
        out = self.output
        out.append('<div class="overflow-x-auto my-3"><table class="w-full text-sm border-collapse">')
        out.append("<thead><tr>")
        for cell in split_cells(rows[0]):
            out.append(
                '<th class="text-left font-semibold text-gray-900 border-b border-gray-300 px-3 py-2">'
                f"{render_inline(cell)}</th>"
            )
        out.append("</tr></thead>")
        if body_start < len(rows):
            out.append("<tbody>")
            for row in rows[body_start:]:
                out.append("<tr>")
                for cell in split_cells(row):
                    out.append(
                        '<td class="border-b border-gray-200 px-3 py-2 text-gray-700">'
                        f"{render_inline(cell)}</td>"
                    )
                out.append("</tr>")
            out.append("</tbody>")
        out.append("</table></div>")
        return True

    def _paragraph(self) -> None:
        self._close_list()
        # The first line is always consumed so the main loop makes progress
        para_lines = [self.lines[self.pos]]
        self.pos += 1
        while self.pos < len(self.lines):
            line = self.lines[self.pos]
            if not line.strip() or starts_block(line):
                break
            para_lines.append(line)
            self.pos += 1
        self.output.append(f'<p class="text-gray-700 my-2">{render_inline(" ".join(para_lines))}</p>')


def render_markdown(source: str) -> str:
    """Render markdown ``source`` to HTML.

    Args:
        source: Markdown text; any string is accepted

    Returns:
        HTML markup, one block element per line. Rendering the same source
        twice yields identical output.
    """
    return _Renderer(source).render()


__all__ = [
    "render_markdown",
    "render_inline",
    "escape_html",
]
