"""Setup configuration for Streamcord Discord Bot."""

from setuptools import setup, find_packages

setup(
    name="streamcord",
    version="0.0.1",
    description="A Discord bot announcing live Twitch streams of a game",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "aiohttp>=3.9",
        "PyYAML>=6.0",
        "python-dotenv>=1.0",
        "prompt_toolkit>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0,<9.1",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "streamcord=streamcord.main:main",
        ],
    },
)
