[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "k8kit"
version = "0.1.0"
description = "Kubernetes configuration loading, API URI helpers and a small REST API client"
requires-python = ">=3.10"
keywords = ["kubernetes", "kubeconfig", "k8s", "client", "minikube"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "pyyaml>=6.0",
    "requests>=2.28",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
k8kit-kubeconfig = "k8kit.kubeconfig:main"
k8kit-ctx-util = "k8kit.ctx_util:main"

[tool.hatch.build.targets.wheel]
packages = ["k8kit"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
ignore_missing_imports = true
