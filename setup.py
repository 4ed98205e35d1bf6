"""
Infernum
Setup script for the infernum package

This package provides a background inference engine with a
non-blocking submit/poll protocol, an HTTP serving layer and a client CLI.
"""

from setuptools import setup, find_packages

setup(
    name="infernum",
    version="0.1.0",
    description="Background inference engine with non-blocking submit/poll",
    author="Infernum contributors",
    python_requires=">=3.9",
    packages=find_packages(include=["infernum", "infernum.*"]),
    install_requires=[
        "loguru>=0.7.0",
        "numpy>=1.20.0",
        "opencv-python-headless>=4.5.0",
        "PyYAML>=5.4.0",
        "pydantic>=2.0.0",
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        "aiohttp>=3.8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "httpx>=0.24.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "infernum-serve=infernum.server.main:main",
            "infernum-client=infernum.client:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
