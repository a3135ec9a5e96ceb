"""Error types raised inside the generator core."""


class GeneratorError(Exception):
    """Base class for generator failures."""


class InsufficientSamples(GeneratorError):
    """Fewer than two samples were requested; correlation is undefined."""

    def __init__(self, sample_size: int):
        self.sample_size = sample_size
        super().__init__(f"Need at least 2 samples, got {sample_size}")
