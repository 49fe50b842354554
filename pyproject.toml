[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pfaedle"
version = "0.1.0"
description = "Building blocks for map-matching GTFS feeds: modes of transport, MOT configuration, feed model, shape storage and GTFS table writers"
requires-python = ">=3.10"
dependencies = []
keywords = ["gtfs", "map-matching", "openstreetmap", "public-transit", "shapes"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: GIS",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pfaedle"]

[tool.hatch.build.targets.sdist]
include = ["pfaedle", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
