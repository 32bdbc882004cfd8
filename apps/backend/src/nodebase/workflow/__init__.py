"""Workflow graph model, ordering, storage and execution."""
