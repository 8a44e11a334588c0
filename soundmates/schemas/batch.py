from pydantic import BaseModel


class BatchSummary(BaseModel):
    status: str  # completed, skipped
    mode: str  # full, incremental
    message: str
    users_processed: int = 0
    similarity_pairs: int = 0
    edges: int = 0
    communities: int = 0
