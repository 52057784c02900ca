[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "qbeflow"
version = "0.1.0"
description = "Data-flow analyses and dead code elimination for QBE intermediate language functions"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "qbe",
    "compiler",
    "data-flow",
    "liveness",
    "reaching-definitions",
    "dead-code-elimination",
    "ssa",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
qbeflow-defuse = "qbeflow.defuse:main"
qbeflow-genkill = "qbeflow.genkill:main"
qbeflow-liveness = "qbeflow.liveness:main"
qbeflow-reaching = "qbeflow.reaching:main"
qbeflow-deadcode = "qbeflow.deadcode:main"
qbeflow-sieve = "qbeflow.sieve:main"

[tool.hatch.build.targets.wheel]
packages = ["qbeflow"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
