from setuptools import setup, find_packages

setup(
    name="l5dsuite",
    version="0.1.0",
    description="Linkerd integration test harness for ephemeral KinD clusters",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "click>=8.0.0",
        "pyyaml>=6.0",
        "jsonpath-ng>=1.5.0",
        "docker>=6.0.0",
        "requests>=2.28.0",
        "rich>=13.0.0",  # For nice terminal output
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "l5dsuite=l5dsuite.cli:main",
        ],
    },
    python_requires=">=3.10",
)
