"""
Core — Index, resolver and rebuild scheduling

- models: immutable records and the IndexSnapshot
- parsing: line-oriented scanners that produce the records
- index: ProjectIndex, owner of the current snapshot
- resolver: cursor position -> navigation targets
- watch: coalesced rebuilds driven by file events
"""
