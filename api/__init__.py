"""API package for S3 Content Search."""
