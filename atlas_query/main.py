import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .db import close_mongo_connection, connect_to_mongo, get_database
from .errors import SearchError
from .example import ExampleQuery
from .models import PageEnvelope, SearchRequest

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title="Atlas Search Query API", version="1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    await connect_to_mongo(app)
    logger.info("Connected to MongoDB")


@app.on_event("shutdown")
async def shutdown_event():
    await close_mongo_connection(app)
    logger.info("Closed MongoDB connection")


@app.exception_handler(SearchError)
async def search_error_handler(request: Request, exc: SearchError):
    return JSONResponse(status_code=exc.code, content=exc.to_dict())


@app.post("/search/{collection}", response_model=PageEnvelope)
async def search(collection: str, req: SearchRequest):
    return await ExampleQuery(collection, req).run()


@app.get("/health")
async def health():
    try:
        database = await get_database()
        await database.list_collection_names()
        return JSONResponse({"status": "ok"})
    except Exception:
        raise HTTPException(status_code=503, detail="MongoDB unreachable")
