"""Nexus-RV trace messages: model, encoder, decoder, text form and commands."""

__version__ = "0.0.1"
__all__ = ["errors", "messages", "printer", "decoder", "encoder", "reader", "dump", "assemble"]