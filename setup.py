"""Setup configuration for the intakeform client intake service."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="intakeform",
    version="0.1.0",
    author="Platform21",
    author_email="dev@platform21.com.au",
    description="Schema-driven client intake forms with drafts, file uploads and an intake API",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/platform21/intakeform",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"intakeform": ["assets/*.js"]},
    include_package_data=True,
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    ],
    python_requires=">=3.9",
    install_requires=[
        "jsonschema>=4.20.0",
        "python-dateutil>=2.8.2",
        "typing-extensions>=4.8.0",
        "httpx>=0.27.0",
        "pydantic-settings>=2.2.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "black>=23.0.0",
            "mypy>=1.5.0",
            "ruff>=0.1.0",
        ],
    },
)
