from setuptools import setup, find_packages

setup(name="symcalc",
    version="0.1.0",
    description="Expression parsing, evaluation, symbolic differentiation, simplification and linear solving",
    license='MIT',
    python_requires=">=3.10",
    install_requires=[
        "ply",
        "numpy"
    ],
    py_modules=[
        "config",
        "differentiator",
        "engine",
        "errors",
        "evaluator",
        "execute",
        "lexer",
        "linalg",
        "parser",
        "rationalizer",
        "responses",
        "simplifier",
    ],
    packages=find_packages(exclude=["tests", "tests.*"]),
    entry_points={
        "console_scripts": [
            "symcalc=execute:main",
        ],
    },
    extras_require={
        "dev": ["pytest>=7", "hypothesis", "torch"],
    },
)
