"""Query parameter types for paged listings."""

from typing import Annotated

from fastapi import Query

Skip = Annotated[int, Query(ge=0, description="Rows to skip")]

BoardPageSize = Annotated[
    int, Query(ge=1, le=100, description="Feature requests per page")
]

AdminPageSize = Annotated[int, Query(ge=1, le=200, description="Users per page")]
