[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "neatevo"
version = "0.1.0"
description = "NEAT building blocks: genomes, crossover, speciation, reproduction, statistics and recurrent-capable network activation"
requires-python = ">=3.10"
dependencies = []
keywords = ["neat", "neuroevolution", "genetic-algorithm", "neural-network", "evolution"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["neatevo"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
