import os
from datetime import datetime
from pathlib import Path

from setuptools import find_packages, setup

BASE_VERSION = "0.1.0"


def get_version_metadata() -> tuple[str, dict[str, str]]:
    """
    Generate the package version string and associated metadata from the build
    context.

    - Reads the build type from the ``TRANSMUTE_BUILD_TYPE`` environment variable
      (defaults to "dev").
    - Reads the build iteration from the ``TRANSMUTE_BUILD_ITERATION`` environment
      variable (defaults to 0).

    The package version string is then constructed based on the build type:
    - release: the base version
    - candidate: ``{base_version}.rc{build_iteration}``
    - nightly or alpha: ``{base_version}.a{build_iteration}``
    - dev (or anything else): ``{base_version}.dev{build_iteration}``

    :returns: A tuple containing the package version string and a dictionary of metadata
    """
    build_type = os.getenv("TRANSMUTE_BUILD_TYPE", "dev").lower()
    build_iteration = os.getenv("TRANSMUTE_BUILD_ITERATION") or 0

    if build_type == "release":
        package_version = BASE_VERSION
    elif build_type == "candidate":
        package_version = f"{BASE_VERSION}.rc{build_iteration}"
    elif build_type in ["nightly", "alpha"]:
        package_version = f"{BASE_VERSION}.a{build_iteration}"
    else:
        package_version = f"{BASE_VERSION}.dev{build_iteration}"

    metadata = {
        "version": f'"{package_version}"',
        "base_version": f'"{BASE_VERSION}"',
        "build_type": f'"{build_type}"',
        "build_iteration": f'"{build_iteration}"',
        "build_date": f'"{datetime.now().strftime("%Y-%m-%d")}"',
    }

    return package_version, metadata


def write_module_version() -> str:
    """
    Write the version metadata to src/transmute/version.py.

    :returns: The package version string
    """
    version, metadata = get_version_metadata()
    metadata_path = Path(__file__).parent / "src" / "transmute" / "version.py"

    with metadata_path.open("w") as file:
        file.writelines([f"{key} = {value}\n" for key, value in metadata.items()])

    return version


setup(
    name="transmute",
    version=write_module_version(),
    description="Multi-step file format conversion over a graph of pluggable handlers",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0",
        "loguru>=0.7",
        "pydantic>=2.6",
        "pydantic-settings>=2.2",
        "typer>=0.12",
    ],
    extras_require={
        "dev": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "transmute=transmute.__main__:app",
        ],
    },
)
