from soundmates.services import match_service, profile_service
from soundmates.services.attribute_loader import load_attribute_data, parse_genres
from soundmates.services.batch import (
    BatchGuard,
    BatchInProgressError,
    BatchOrchestrator,
    BatchResult,
    run_batch_in_background,
    run_full_batch,
)
from soundmates.services.community import detect_communities
from soundmates.services.graph import build_similarity_graph
from soundmates.services.similarity import (
    ArtistInfo,
    AttributeData,
    PairwiseSimilarityBuilder,
    SimilarityRecord,
    UserAttributeSet,
    combined_similarity,
    jaccard,
)
from soundmates.services.similarity_store import (
    CommunityAssignment,
    CommunityStoreWriter,
    SimilarityStoreWriter,
    load_similarity_records,
)

__all__ = [
    "match_service",
    "profile_service",
    # Loading
    "load_attribute_data",
    "parse_genres",
    # Similarity
    "jaccard",
    "combined_similarity",
    "UserAttributeSet",
    "ArtistInfo",
    "AttributeData",
    "SimilarityRecord",
    "PairwiseSimilarityBuilder",
    # Persistence
    "SimilarityStoreWriter",
    "CommunityStoreWriter",
    "CommunityAssignment",
    "load_similarity_records",
    # Graph
    "build_similarity_graph",
    "detect_communities",
    # Batch
    "BatchGuard",
    "BatchInProgressError",
    "BatchOrchestrator",
    "BatchResult",
    "run_full_batch",
    "run_batch_in_background",
]
