"""
Core of the batch subtitle translator: chunking, cancellation, errors,
glossary helpers and the job engine in core.batch.
"""
