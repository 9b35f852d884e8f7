[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "octdispersion"
version = "0.1.0"
description = "Estimate numerical dispersion compensation coefficients for OCT data by sweeping A-scan sharpness metrics"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["oct", "optical coherence tomography", "dispersion", "signal processing", "a-scan"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Medical Science Apps.",
    "Topic :: Scientific/Engineering :: Image Processing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["octdispersion"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
