"""API package.

This exposes router modules to simplify test imports like:
	from splitter.api.routes.splits import router
"""

__all__ = [
	"routes",
]
