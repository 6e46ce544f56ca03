"""VidTube backend: accounts, token sessions and channel aggregation."""
