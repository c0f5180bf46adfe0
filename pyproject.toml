[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "atlaskv"
version = "0.1.0"
description = "Storage layer for a single-node key-value store: a checksummed write-ahead log, crash recovery and SSTable files"
requires-python = ">=3.10"
dependencies = []
keywords = ["kv-store", "database", "lsm-tree", "wal", "sstable", "storage"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Database :: Database Engines/Servers",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["atlaskv"]

[tool.pytest.ini_options]
addopts = "-ra"
