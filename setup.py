# setup.py
from setuptools import setup, find_packages

setup(
    name="data_manifest",
    version="1.0.0",
    description="Записывает URL, заголовок и текст страниц в Google Sheets, по листу на домен",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "click>=8.2",
        "pydantic>=2.5",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": ["data-manifest=data_manifest.cli:cli"],
    },
    python_requires=">=3.11",
)
