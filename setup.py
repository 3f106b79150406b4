from setuptools import setup, find_packages

setup(
    name="bundlesign",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "rich",
        "python-dotenv",
        "toml",
        "rich-argparse",
        "asn1crypto",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "cryptography",
        ],
    },
    entry_points={
        "console_scripts": [
            "bundlesign=bundlesign.cli:main",
        ],
    },
)
