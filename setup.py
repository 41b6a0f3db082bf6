from setuptools import find_packages, setup

setup(
    name="musqet-identity",
    version="0.0.0",
    packages=find_packages(exclude=["tests", "tests.*", "examples", "examples.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.5",
        "cryptography",
        "requests",
        "click",
        "coincurve>=18",
        "pynacl",
    ],
    extras_require={
        "test": [
            "pytest",
            "fastapi",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "musqet=musqet.cli:cli",
        ],
    },
)
