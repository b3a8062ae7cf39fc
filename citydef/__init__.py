"""CityDef ingestion core: repair, normalize, audit, pack and spawn towns."""

__version__ = "0.3.0"
