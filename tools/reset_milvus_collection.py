from __future__ import annotations

"""CLI utility to drop and recreate the Milvus chunk collection."""

import argparse

from semantic_hub.app.settings import settings


def main() -> None:
    """Reset the configured Milvus collection using app settings."""
    parser = argparse.ArgumentParser(description="Drop and recreate the Milvus chunk collection.")
    parser.add_argument(
        "--collection",
        default=settings.milvus_collection,
        help="Collection name to reset.",
    )
    parser.add_argument(
        "--drop-only",
        action="store_true",
        help="Drop the collection without recreating it.",
    )
    args = parser.parse_args()

    try:
        from pymilvus import connections, utility
    except ImportError as exc:
        raise SystemExit("pymilvus is required to reset the collection") from exc

    connections.connect(alias="default", uri=settings.milvus_uri, token=settings.milvus_token)

    if utility.has_collection(args.collection):
        print(f"Dropping collection: {args.collection}")
        utility.drop_collection(args.collection)
    if args.drop_only:
        return

    # Recreate through the chunk store so schema and index match the service.
    from semantic_hub.vectorstore.milvus import MilvusChunkStore, MilvusConfig

    MilvusChunkStore(
        dimension=settings.embedding_dimension,
        config=MilvusConfig(
            uri=settings.milvus_uri,
            token=settings.milvus_token,
            collection=args.collection,
            consistency=settings.milvus_consistency,
            index_type=settings.milvus_index_type,
            nlist=settings.milvus_nlist,
            nprobe=settings.milvus_nprobe,
            hnsw_m=settings.milvus_hnsw_m,
            hnsw_ef_construction=settings.milvus_hnsw_ef_construction,
            hnsw_ef=settings.milvus_hnsw_ef,
        ),
    )
    print(f"Recreated collection: {args.collection} (dim={settings.embedding_dimension})")


if __name__ == "__main__":
    main()
