[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pumpsim"
version = "1.0.0"
description = "Core logic of an insulin pump simulator: JSON data storage, error log, basal adjustment, bolus calculation, reminders and alert settings"
requires-python = ">=3.10"
dependencies = []
keywords = ["insulin", "pump", "simulator", "diabetes", "glucose", "bolus"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Medical Science Apps.",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pumpsim"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
