"""
Ingestion — sanitising, chunking, and embedding documents into the vector store.

Control flow: :func:`~bulletin_rag.ingestion.pipeline.run_ingestion` loads
source documents, the :class:`~bulletin_rag.ingestion.scheduler.BatchScheduler`
fans them out in bounded groups, and the
:class:`~bulletin_rag.ingestion.worker.IngestionWorker` embeds and upserts
each chunk in order.
"""
