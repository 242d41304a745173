"""Setup configuration for the Kestrel Discord bot."""

from setuptools import setup, find_packages

setup(
    name="kestrel",
    version="0.1.0",
    description="A Discord bot with file-defined commands and drift-free slash command registration",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "aiosqlite>=0.20",
        "aiohttp>=3.9",
        "PyYAML>=6.0",
        "python-dotenv>=1.0",
        "prompt_toolkit>=3.0",
        "psutil>=5.9",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "kestrel=kestrel.main:main",
        ],
    },
)
