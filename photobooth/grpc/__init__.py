"""gRPC surface of the photobooth: ``BoothService`` over a PipelineController."""
