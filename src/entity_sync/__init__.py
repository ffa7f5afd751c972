"""Write-behind synchronization of an in-memory entity graph into MongoDB."""

__version__ = "0.1.0"
