from setuptools import setup, find_packages
import os
import re

# Function to extract version from version.py
def get_version(package):
    """Return package version as listed in `__version__` in `version.py`."""
    init_py_path = os.path.join(os.path.dirname(__file__), package, "version.py")
    if not os.path.exists(init_py_path):
        raise RuntimeError(f"Unable to find version.py in {package}.")

    with open(init_py_path, 'r', encoding='utf-8') as f:
        init_py = f.read()

    match = re.search("__version__ = ['\"]([^'\"]+)['\"]", init_py)
    if match:
        return match.group(1)
    raise RuntimeError(f"Unable to find __version__ string in {init_py_path}")

version = get_version('.')

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith("#")]

setup(
    name="vidharvest",
    version=version,
    description="Scheduled YouTube search ingestion with API key rotation and a read API",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=[
        "config",
        "database",
        "exceptions",
        "logging_config",
        "main",
        "middleware",
        "models",
        "server",
        "utils",
        "version",
    ],
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": ["httpx>=0.27", "pytest>=8.0"],
    },
    entry_points={
        "console_scripts": [
            "vidharvest=server:main",
        ],
    },
)
