[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cmoon"
version = "0.1.0"
description = "A small multi-threaded async runtime: executor, I/O reactor, blocking entry points, a non-blocking HTTP GET client and a delay server to try it on"
requires-python = ">=3.10"
dependencies = []
keywords = ["async", "runtime", "executor", "reactor", "coroutines", "event-loop", "threads"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
cmoon-delays-server = "cmoon.delays_server:main"

[tool.hatch.build.targets.wheel]
packages = ["cmoon"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
