[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "stateline"
version = "0.1.0"
description = "Parallel-tempering MCMC sampler with adaptive proposals, convergence diagnostics and CSV chain output"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["mcmc", "parallel tempering", "sampling", "bayesian", "inference"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["stateline"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
