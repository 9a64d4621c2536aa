# setup.py
from setuptools import setup, find_packages

setup(
    name="media_scout",
    version="0.1.0",
    description="Асинхронный сканер видео и iframe над первым экраном сайтов MediaScout",
    packages=find_packages(exclude=("tests", "tests.*")),  # автоматически найдёт папку media_scout
    package_data={"media_scout": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "click>=8.1",
        "jinja2>=3.1",
        "playwright>=1.40",
        "pydantic>=2.5",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "media_scout=media_scout.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
