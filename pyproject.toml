[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vpsalloc"
version = "0.1.0"
description = "Persistent IP address and storage partition allocation for VPS hosts"
requires-python = ">=3.10"
dependencies = []
keywords = ["vps", "ip", "allocation", "storage", "pool", "snapshot", "backup"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
vpsalloc = "vpsalloc.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["vpsalloc"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
