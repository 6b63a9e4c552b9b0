[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "concurlab"
version = "0.1.0"
description = "Small hands-on experiments with threads, processes, semaphores and producer/consumer buffers"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "concurrency",
    "threads",
    "processes",
    "semaphore",
    "race-condition",
    "producer-consumer",
    "teaching",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
concurlab-counters = "concurlab.counters:main"
concurlab-reactivity-threads = "concurlab.reactivity:main_threads"
concurlab-reactivity-processes = "concurlab.reactivity:main_processes"
concurlab-scheduler = "concurlab.scheduler:main"
concurlab-transactions = "concurlab.transactions:main"
concurlab-pipeline = "concurlab.filepipeline:main"

[tool.hatch.build.targets.wheel]
packages = ["concurlab"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
