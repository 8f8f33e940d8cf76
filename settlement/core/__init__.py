"""Configuration, locking, signing and process wiring."""
