"""Query engine adapters.

Adapters only forward query text to a real database and implement the
snapshot and restore hooks the execution driver needs between examples.
"""
