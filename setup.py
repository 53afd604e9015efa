from setuptools import setup, find_namespace_packages

setup(
    name="drc",
    version="0.1.0",
    packages=find_namespace_packages(where="src", include=["drc", "drc.*"]),
    package_dir={"": "src"},
    install_requires=[
        "docker>=7.0",
        "requests>=2.28",
        "pydantic>=2.0",
        "pyyaml>=6.0",
        "click>=8.0",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "drc=drc.CLI.main:main",
        ],
    },
)
