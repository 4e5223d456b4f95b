"""servicegen -- scaffolds Spring Boot service projects.

Renders a project skeleton, optionally adds REST interface stubs from an
OpenAPI document and a data-access layer derived from a live database
schema.
"""

__version__ = "0.1.0"
