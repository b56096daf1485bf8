from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from planetlocal.core import schemas
from planetlocal.core.dispatcher import QueryDispatcher, get_dispatcher
from planetlocal.core.errors import InvalidQueryError

router = APIRouter(tags=["Query"])

dispatcher_dep = Annotated[QueryDispatcher, Depends(get_dispatcher)]


def parse_query_request(body: bytes) -> str:
    """
    Pull the SQL text out of a POST body.

    Unparseable JSON, a missing or non-string `query` and an empty string all
    end in the same 400, whatever the Content-Type header says.
    """
    try:
        return schemas.QueryRequest.model_validate_json(body).query
    except ValidationError:
        raise InvalidQueryError() from None


@router.get("/", response_model=schemas.StatusResponse)
async def status_check():
    return {"status": "OK"}


@router.post("/", response_model=schemas.QueryResult)
async def run_query(request: Request, dispatcher: dispatcher_dep):
    sql = parse_query_request(await request.body())
    return await dispatcher.dispatch(sql)
