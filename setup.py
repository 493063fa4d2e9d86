from setuptools import setup, find_packages

setup(
    name="retinoforge",
    version="0.1.0",
    description="Drifting checkerboard bar stimuli for population receptive field mapping",
    author="RetinoForge Contributors",
    license="MIT",
    packages=find_packages(include=["retinoforge", "retinoforge.*"]),
    python_requires=">=3.8",
    install_requires=[
        "torch>=2.0",
        "numpy>=1.21.0",
        "PyYAML>=6.0",
        "tqdm>=4.60",
        "matplotlib>=3.5",
    ],
    extras_require={
        "hdf5": [
            "h5py>=3.0",
        ],
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=3.0",
            "h5py>=3.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "retinoforge=retinoforge.cli:main",
        ],
    },
)
