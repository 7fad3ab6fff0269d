"""Compute the installable resources for a version of an application.

The library validates a user's flavor layer selections and parameters,
expands template expressions in the inputs, coalesces the values document
and renders or fetches the manifests of the installation source. See
`hub_render.render.ManifestRenderer` for the entry point.
"""

__all__ = [
    "manifest",
    "inputs",
    "values",
    "template",
    "validation",
    "resources",
    "render",
    "helm",
    "source",
    "exceptions",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
