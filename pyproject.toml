[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "perfbench"
version = "1.0.0"
description = "Toolkit for writing concurrent benchmarks, with fake-data generators, REST relay node actions and a Kubernetes manifest generator"
requires-python = ">=3.10"
keywords = [
    "benchmark",
    "performance",
    "load-testing",
    "latency",
    "fake-data",
    "kubernetes",
]
classifiers = [
    "Development Status :: 4 - Beta",
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
    "Topic :: System :: Benchmark",
]
dependencies = [
    "pymysql",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
perfbench-kube-configurer = "perfbench.restrelay.kube:main"

[tool.hatch.build.targets.wheel]
packages = ["perfbench"]

[tool.hatch.build.targets.sdist]
include = ["perfbench", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
