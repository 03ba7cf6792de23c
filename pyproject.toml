[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "makcu"
version = "0.1.1"
description = "Serial-port control of a mouse-emulating device: movement, buttons, wheel, locks and button-state reports."
requires-python = ">=3.10"
dependencies = ["pyserial"]
keywords = ["serial", "mouse", "com-port", "asyncio", "makcu"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Terminals :: Serial",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[project.scripts]
makcu-demo = "makcu.demo:main"

[tool.hatch.build.targets.wheel]
packages = ["makcu"]

[tool.pytest.ini_options]
addopts = "-ra"
