"""Builders for test data shared across test modules."""

from stratbook.domain import ImageUpload, MapForm, StrategyForm

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def make_upload(name: str = "diagram.png", content_type: str = "image/png", size: int = 0, **kwargs) -> ImageUpload:
    """Build an upload; ``size`` pads the payload to that many bytes."""
    data = PNG_BYTES if size <= 0 else b"\x00" * size
    return ImageUpload(filename=name, content_type=content_type, data=data, **kwargs)


def make_map(service, name: str = "Desert Storm", **kwargs):
    """Create a map through the service."""
    return service.create_map(MapForm(name=name, **kwargs))


def make_strategy(service, map_id, title: str = "Rush A", description: str = "Fast push through A long", **kwargs):
    """Create a strategy through the service and return the write result."""
    return service.create_strategy(
        StrategyForm(map_id=map_id, title=title, description=description),
        **kwargs,
    )
