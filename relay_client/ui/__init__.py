"""PyQt6 front end for the relay client."""
