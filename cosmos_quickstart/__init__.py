"""
Cosmos Quickstart: Azure Cosmos DB getting-started tutorial

Runs basic CRUD operations (create database, create container, insert,
query, replace, delete) against a document store.
"""

__version__ = "0.1.0"

from .demo import DemoSession, run_demo

__all__ = ["DemoSession", "run_demo", "__version__"]
