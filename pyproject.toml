[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dfscore"
version = "0.1.0"
description = "A small peer-to-peer distributed file store with content-addressed storage and encrypted replication"
requires-python = ">=3.10"
keywords = ["distributed", "file-storage", "p2p", "tcp", "aes-ctr"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
dfscore = "dfscore.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["dfscore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
