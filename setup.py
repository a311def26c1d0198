"""
logicloops: Logical Loops Compiled to Recursive Procedures

Declarative multi-iterator loops (``Spec do Body``) with:
1. Per-iterator argument-threading artifacts
2. Exact stop bounds for stepped numeric ranges
3. Two-clause procedure synthesis with a signature-keyed cache
4. A reference interpreter with the same observable behaviour
"""

from setuptools import setup, find_packages

setup(
    name="logicloops",
    version="1.0.0",
    description="Logical loops compiled to cached recursive procedures",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    author="logicloops developers",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*", "benchmarks", "benchmarks.*"]),
    install_requires=[
        "numpy>=1.24.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-benchmark>=4.0",
            "tabulate>=0.9",
        ]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Compilers",
        "Topic :: Software Development :: Code Generators",
    ],
)
