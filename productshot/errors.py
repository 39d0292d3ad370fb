"""
Error taxonomy for ProductShot Studio.
"""


class ProductShotError(Exception):
    """Base exception for ProductShot errors."""
    pass


class AnalysisError(ProductShotError):
    """Product analysis failed or returned nothing usable."""
    pass


class RefinementError(ProductShotError):
    """Prompt contextualization or diversification failed."""
    pass


class GenerationError(ProductShotError):
    """A collaborator call failed to produce a result."""
    pass


class ParseError(GenerationError):
    """A structured response could not be parsed."""
    pass


class InvalidState(ProductShotError):
    """Operation rejected because the session is not in a state that allows it."""
    pass


class ConfigError(ProductShotError):
    """Configuration is missing or invalid."""
    pass
