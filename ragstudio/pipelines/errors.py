"""Pipeline exceptions. Messages for unknown pipelines always contain "not found"."""


class PipelineError(Exception):
    """Base class for pipeline failures."""


class PipelineNotFoundError(PipelineError):
    def __init__(self, pipeline_id: str) -> None:
        self.pipeline_id = pipeline_id
        super().__init__(f"Pipeline {pipeline_id} not found")


class PipelineNotReadyError(PipelineError):
    def __init__(self) -> None:
        super().__init__("Pipeline not ready. Please ingest documents first.")


class InvalidConfigurationError(PipelineError):
    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__(f"Invalid pipeline configuration: {'; '.join(errors)}")
