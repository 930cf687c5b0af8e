[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fbconv"
version = "0.1.0"
description = "Element-tree XML toolkit with path queries, FB2 book detection and layered JSON/YAML/TOML configuration reading"
requires-python = ">=3.11"
keywords = ["fb2", "fictionbook", "xml", "etree", "xpath", "configuration", "ebook", "zip"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Processing :: Markup :: XML",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "pyyaml",
    "tomli-w",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["fbconv"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
