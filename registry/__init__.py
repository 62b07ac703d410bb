"""
Airdrop Commitment Builder - Registry Package

Ingests category records into the leaf registry, serializes the tree and proof
artifacts and commits them to the output directory.
"""
