#!/usr/bin/env python3
from setuptools import setup, find_packages
from pathlib import Path
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

def get_version():
    try:
        with open('config/constants.py', 'r', encoding='utf-8') as f:
            for line in f:
                if line.startswith('__version__'):
                    return line.split('=')[1].strip().strip('"\'')
    except Exception:
        return "1.0.0"

setup(
    name="vhc-offline",
    version=get_version(),
    description="VHC Offline - offline caching, local storage and background sync engine for the Wrenchd IVHC app",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Wrenchd",
    packages=find_packages(include=['vhc_offline', 'vhc_offline.*', 'config', 'config.*']),
    include_package_data=True,
    py_modules=["vhcsync"],
    python_requires=">=3.9",
    install_requires=[
        "httpx>=0.24.0",
        "requests>=2.28.0",
        "urllib3>=1.26.0",
        "aiosqlite>=0.19.0",
        "rich>=13.0.0",
    ],
    extras_require={
        'dev': [
            'pytest>=7.0.0',
            'pytest-cov>=4.0.0',
            'pytest-asyncio>=0.21.0',
            'black>=23.0.0',
            'flake8>=6.0.0',
            'mypy>=1.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'vhcsync=vhcsync:main',
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Framework :: AsyncIO",
        "Intended Audience :: Developers",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Database",
        "Topic :: Utilities",
    ],
    keywords=[
        "offline",
        "service-worker",
        "pwa",
        "cache",
        "background-sync",
        "vehicle-health-check",
    ],
)
