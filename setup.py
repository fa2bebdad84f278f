from setuptools import setup, find_packages


setup(
    name="ingot",
    version="0.1",
    packages=find_packages(include=["ingot", "ingot.*"]),
    description="Solid-compressed, checksummed asset packages built offline and loaded at start-up.",
    author="vercingetorx",
    python_requires=">=3.9",
    install_requires=[
        "zstandard>=0.22.0",
        "lz4>=4.3.2",
    ],
    entry_points={
        "console_scripts": [
            "ingot=ingot.cli:main",
        ]
    },
)
