from setuptools import setup, find_packages

setup(
    name="querystack",
    version="0.1.0",
    description="Encrypted S3 database bucket and Lambda query function, provisioned with Pulumi",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    author="querystack Team",
    packages=find_packages(include=["querystack", "querystack.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0.0",
        "click>=8.0.0",
        "pyyaml>=6.0",
        "pulumi>=3.0.0",
        "pulumi-aws>=7.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "mypy>=1.0.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "querystack=querystack.cli.main:cli",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
