from setuptools import find_packages, setup

"""
# Usage instructions
#
# To install the package
#   'pip install .'
#
# To install with test dependencies
#   'pip install -e .[test]'
"""

INSTALL_REQUIRES = [
    "msgspec>=0.18",
    "numpy>=1.26",
    "aiohttp>=3.9",
    "ciso8601>=2.3",
]

TEST_REQUIRES = [
    "pytest>=8.0",
    "pytest-asyncio>=0.23",
]


setup(
    name="kraken_feed",
    version="0.1.0",
    description="Kraken WebSocket feed core: frame decoding, payload typing and order book replicas.",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=INSTALL_REQUIRES,
    extras_require={"test": TEST_REQUIRES},
)
