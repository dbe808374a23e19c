"""Setup script for agama-dump package."""
from pathlib import Path
from setuptools import setup, find_packages

# Read long description from README
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

setup(
    name="agama-dump",
    version="1.0.0",
    description="Dump the Agama installer REST API data into a JSON file",
    packages=find_packages(exclude=["tests*"]),
    python_requires=">=3.10",
    install_requires=[
        "httpx>=0.27",
        "pydantic>=2.0",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "agama-dump=agama_dump.__main__:main",
        ],
    },
    long_description=long_description,
    long_description_content_type="text/markdown",
)
