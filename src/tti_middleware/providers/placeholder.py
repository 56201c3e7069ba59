"""Placeholder image returned in dry mode."""

# 1x1 white PNG
DRY_MODE_PLACEHOLDER_IMAGE = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mP8/x8AAwMCAO+ip1sAAAAASUVORK5CYII="
)
DRY_MODE_PLACEHOLDER_MIME_TYPE = "image/png"
