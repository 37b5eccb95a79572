[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hydroboard"
version = "0.1.0"
description = "Typed, hierarchical blackboards and node-graph pipelines for game AI behaviours"
requires-python = ">=3.10"
dependencies = []
keywords = ["blackboard", "behavior-tree", "game-ai", "pipeline", "graph"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: Games/Entertainment",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hydroboard"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
