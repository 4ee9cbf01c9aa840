"""
Infrastructure layer: configuration, logging, storage and outbound clients.
"""
