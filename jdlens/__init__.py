"""JD analysis service: skill matching and interview question resolution."""

__version__ = "0.1.0"
