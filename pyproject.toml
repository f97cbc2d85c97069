[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "arcir"
version = "0.1.0"
description = "A graph-based compiler intermediate representation with type inference, textual dumps, CSE and DCE passes"
requires-python = ">=3.10"
keywords = ["compiler", "ir", "intermediate-representation", "optimization", "cse", "dce"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["arcir"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
