"""
Fox: Composable Callables for Iterative Refinement and Failure Capture

Wrappers that compose around ordinary callables:
1. Bounded fixed-point iteration with a recorded guess trajectory (Improve)
2. Warning capture into inspectable records (CaptureErrors)
3. Exception-to-warning reflection (ExceptionToError)
4. Callables built from cached source expressions (Expression)
"""

from setuptools import setup, find_packages

setup(
    name="fox",
    version="1.0.0",
    description="Composable callables for iterative refinement and failure capture",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    author="Fox Developers",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy>=1.24.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
        ]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries",
        "Topic :: Scientific/Engineering :: Mathematics",
    ],
)
