"""
Pipeline stages.

Modules:
  base           — ``PipelineStage`` ABC and run bookkeeping
  build_snapshot — ``SnapshotStage``: fetch → parse → assemble → write
"""
