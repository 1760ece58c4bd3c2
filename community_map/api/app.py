import json
import logging
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query

from community_map.config import get_map_data_file

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Community Map API",
    description="Serves geocoded member locations to the community map",
    version="1.0.0"
)

DEFAULT_PREVIEW_LIMIT = 100


def load_map_data(path: Path):
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a JSON array")
    return data


@app.get("/")
def read_root():
    return {"message": "Welcome to the Community Map API"}


@app.get("/mapdata")
def get_map_data(
    preview: bool = False,
    limit: int = Query(DEFAULT_PREVIEW_LIMIT, ge=1),
):
    """
    Return the geocoded members written by the geocoding run.

    The file is read on every request, so results appear while a run is still
    in progress. With ``preview`` only the first ``limit`` records are returned.
    """
    path = Path(get_map_data_file())
    if not path.exists():
        raise HTTPException(status_code=404, detail="Map data has not been generated yet")

    try:
        data = load_map_data(path)
    except (OSError, ValueError) as e:
        logger.error(f"Error reading map data from {path}: {str(e)}")
        raise HTTPException(status_code=500, detail="Map data could not be read")

    if preview:
        return data[:limit]
    return data
