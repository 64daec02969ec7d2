[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "actorkit"
version = "0.2.0"
description = "Reusable asyncio actors: topic broker, type-based message bus, pub/sub, AMQP-style message queue and worker pool"
requires-python = ">=3.10"
dependencies = []
keywords = ["actor", "asyncio", "broker", "pubsub", "pool", "message-queue"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["actorkit"]

[tool.hatch.build.targets.sdist]
include = ["actorkit", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
