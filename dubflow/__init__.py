"""dubflow: provision a video-service account and track a subtitle and dubbing job."""

__version__ = "0.1.0"
