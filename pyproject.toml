[build-system]
requires = ["setuptools>=61.0"]
build-backend = "setuptools.build_meta"

[project]
name = "vulnscan"
version = "0.1.0"
description = "Fetch vulnerability scan reports from GitHub repositories, store them in SQLite and query them over HTTP"
requires-python = ">=3.10"
keywords = ["vulnerability", "cve", "scanner", "sqlite", "github"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
]
dependencies = [
    "requests>=2.28",
    "flask>=2.2",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
vulnscan = "vulnscan.api:main"

[tool.setuptools.packages.find]
include = ["vulnscan*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
