"""API schemas package for request and response models."""
