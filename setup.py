from setuptools import find_namespace_packages, setup

# Project metadata and dependencies live in pyproject.toml, this only declares the namespace package layout
setup(
    packages=find_namespace_packages(include=["dissect.*"]),
    include_package_data=True,
    package_data={"dissect.jumplist": ["helpers/data/*.txt"]},
)
