"""Multi-model fallback orchestration for textswap-service.

Modules:
- orchestrator: FallbackOrchestrator (ordered candidates, first success wins)
- batch: BatchRunner (fixed-size concurrent groups)
- extractors: ResponseExtractor and its named strategies
- models: RequestTemplate, AttemptRecord, CanonicalResult, BatchJob
- policies: ModelPolicy and model discovery narrowing
- credentials: upstream credential precedence
"""

__all__: list[str] = []
