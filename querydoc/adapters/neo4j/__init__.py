"""Neo4j adapter for querydoc."""

from querydoc.adapters.neo4j.engine import GraphSnapshot, Neo4jConnectionParams, Neo4jEngine

__all__ = ("GraphSnapshot", "Neo4jConnectionParams", "Neo4jEngine")
