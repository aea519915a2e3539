"""
Rollwrite - Roll-and-Write Game Engine

A deterministic engine for turn-based roll-and-write games described by
declarative templates. The engine provides:
- A seedable xorshift128+ RNG with serializable state
- A small formula language for conditions, effects and scoring
- A turn-phase session state machine with replay records
- Decision policies for unattended play
"""

__version__ = "0.1.0"
