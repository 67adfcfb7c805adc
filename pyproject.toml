[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xscore"
version = "0.1.0"
description = "Core building blocks of a higher-order shell: lexer, syntax trees, word splitting, variables, signals, exit statuses and system primitives"
requires-python = ">=3.10"
keywords = ["shell", "lexer", "syntax-tree", "variables", "signals"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Shells",
]
dependencies = []

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["xscore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
