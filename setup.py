from setuptools import setup, find_namespace_packages

setup(
    name="t2c",
    version="0.1.0",
    packages=find_namespace_packages(where="src", include=["t2c", "t2c.*"]),
    package_dir={"": "src"},
    install_requires=[
        "pydantic>=2.0",
        "pyyaml>=6.0",
        "click>=8.0",
        "tenacity>=8.0",
        "python-dotenv>=1.0",
        "jinja2>=3.0",
        "fastapi>=0.100",
        "uvicorn>=0.23",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.24",
        ],
    },
    entry_points={
        "console_scripts": [
            "t2c=t2c.CLI.main:main",
        ],
    },
)
