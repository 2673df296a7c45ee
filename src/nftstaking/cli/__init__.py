"""Command-line interface for the local staking chain."""
