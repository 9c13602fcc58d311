from setuptools import setup, find_packages

setup(
    name="lambdac",
    version="0.1.0",
    description="lambdac: Hindley-Milner inference, down-levelling and IR generation for a small functional language",
    packages=find_packages(include=["lambdac", "lambdac.*"]),
    python_requires=">=3.10",
    install_requires=[
        "llvmlite>=0.41.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis>=6.0",
        ],
    },
)
