"""Freight pricing core used by the compare endpoint.

The package is free of Flask and HTTP concerns except for
:mod:`quote.distance`, which wraps the remote distance collaborator.
"""
