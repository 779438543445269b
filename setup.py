from setuptools import setup, find_packages

setup(
    name="afkl-fleet-catalog",
    version="1.0.0",
    description="Air France / KLM fleet catalog updater",
    package_dir={"": "backend"},
    packages=find_packages(where="backend"),
    python_requires=">=3.10",
    install_requires=[
        "httpx>=0.23",
        "python-dateutil>=2.8",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-httpx>=0.23",
        ],
        "lint": [
            "black>=23.0",
            "flake8>=6.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "fleet-update=fleet_catalog.main:main",
        ],
    },
)
