[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pbdsim"
version = "0.1.0"
description = "Position based dynamics: particles, constraints, rigid, grid and soft bodies with a simple collision pipeline"
requires-python = ">=3.10"
keywords = ["physics", "simulation", "position-based-dynamics", "pbd", "particles", "constraints"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Physics",
]
dependencies = [
    "numpy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["pbdsim"]

[tool.pytest.ini_options]
addopts = "-ra"
