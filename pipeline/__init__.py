"""Normalization, decoding, classification, ranking and output stages.

Data flows fetchers -> normalize (decoder for on-chain logs) -> classify ->
latest_per_market -> rank -> aggregate -> sink.
"""
