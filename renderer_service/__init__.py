"""HTTP service wrapping :class:`script_renderer.pipeline.RenderPipeline`."""
