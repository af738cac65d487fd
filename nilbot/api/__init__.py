"""HTTP clients for the remote storage service."""
