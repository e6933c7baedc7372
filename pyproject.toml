[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "jkcli"
version = "0.1.0"
description = "Jenkins client library: contexts, jobs, artifacts, nodes, plugins, credentials, queue, run filters and fuzzy job search"
requires-python = ">=3.10"
keywords = ["jenkins", "ci", "build", "automation", "devops", "artifacts"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]
dependencies = [
    "pyyaml>=6.0",
    "requests>=2.31",
    "platformdirs>=3.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "responses>=0.24",
]

[tool.hatch.build.targets.wheel]
packages = ["jkcli"]

[tool.hatch.build.targets.sdist]
include = ["jkcli", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
