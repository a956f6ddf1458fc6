"""
dbbridge Setup
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

POSTGRES = ["psycopg2-binary>=2.9.0"]
MYSQL = ["mysql-connector-python>=8.0.0"]
SQLSERVER = ["pymssql>=2.2.0"]
ORACLE = ["oracledb>=1.4.0"]
ODBC = ["pyodbc>=4.0.39"]
PANDAS = ["pandas>=1.5.0"]

setup(
    name="dbbridge",
    version="0.1.0",
    author="dbbridge Contributors",
    description="Uniform thin client over SQLite, PostgreSQL, MySQL, SQL Server, Oracle and ODBC",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["dbbridge", "dbbridge.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Database",
        "Topic :: Database :: Front-Ends",
    ],
    python_requires=">=3.9",
    install_requires=[
        "sqlglot>=20.0.0,<31",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "postgres": POSTGRES,
        "mysql": MYSQL,
        "sqlserver": SQLSERVER,
        "oracle": ORACLE,
        "odbc": ODBC,
        "pandas": PANDAS,
        "all": POSTGRES + MYSQL + SQLSERVER + ORACLE + ODBC + PANDAS,
        "test": ["pytest>=7.4.0", "pandas>=1.5.0"],
    },
    keywords="database, sql, sqlite, postgres, mysql, sqlserver, oracle, odbc",
)
