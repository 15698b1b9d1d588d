"""Setup file for ctstm-simulator package."""

from setuptools import setup, find_packages

setup(
    name="ctstm-simulator",
    version="0.1.0",
    description="Individual-level continuous time state transition simulation",
    author="Michael Draugelis",
    author_email="",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={
        "ctstm_simulator": [
            "config/configs/*.yaml",
            "config/configs/*/*.yaml",
        ],
    },
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.21.0",
        "pandas>=1.3.0",
        "scipy>=1.7.0",
        "hydra-core>=1.3.0",
        "omegaconf>=2.3.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Healthcare Industry",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Scientific/Engineering",
        "Topic :: Scientific/Engineering :: Medical Science Apps.",
    ],
)
