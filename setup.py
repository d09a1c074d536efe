from setuptools import setup, find_packages

setup(
    name="chainstats",
    version="0.1.0",
    packages=find_packages(include=["chainstats", "cache", "config", "monitoring", "explorer"]),
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "pydantic-settings",
        "structlog",
        "redis",
        "psycopg2-binary",
        "sqlalchemy>=2",
        "prometheus-client",
        "slowapi",
        "click"
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx"
        ]
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "chainstats=chainstats.cli:cli",
        ],
    }
)
