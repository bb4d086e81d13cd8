"""Operator scripts for the inventory workflow."""
