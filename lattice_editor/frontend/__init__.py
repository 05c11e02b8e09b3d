"""Adapters between the engine and files, encoders and the command line."""
