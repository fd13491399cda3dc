"""Adapters connecting the core to the network, metrics and logging."""
