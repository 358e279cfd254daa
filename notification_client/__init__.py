"""Realtime notification client package.

Import :func:`notification_client.main.create_client` to build a client
session; the subpackages follow the domain / application / infrastructure /
interfaces layering.
"""
