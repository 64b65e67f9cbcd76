"""Core engine for specgraph: graph, cycles, reachability, validation, links."""
