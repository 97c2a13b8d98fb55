from setuptools import find_packages, setup

setup(
    name="melcepstra",
    version="0.1.0",
    description="MFCC time series extraction for distance-based audio matching.",
    author="Araray Velho",
    author_email="araray@gmail.com",
    packages=find_packages(include=["melcepstra", "melcepstra.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "scipy",
        "pandas",
        "librosa",
        "soundfile",
        "click",
        "tabulate",
        "pydantic>=2",
        "toml",
        "rich",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-mock",
        ],
    },
    entry_points={
        "console_scripts": [
            "melcepstra=melcepstra.cli.main:cli",
        ],
    },
)
