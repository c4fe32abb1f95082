"""
GamePilot Identity Engine
=========================

Player identity, mood inference and game recommendation engine. Turns a
history of play sessions into an inferred mood, ranked game
recommendations, adaptive difficulty settings and a feedback loop that
tracks how well past forecasts matched reality.

Modules:
    - config: Configuration, weights and taxonomy tables
    - taxonomy: Shared, versioned genre/mood lookup table
    - models: Sessions, identities, games and recommendations
    - vectors: Cosine similarity and fixed-length vector helpers
    - mood: Mood inference, preference updates and forecasts
    - playstyle: Playstyle archetype model
    - identity: Player identity computation
    - features: Game feature vectors and behaviour profiles
    - collaborative: Sparse user-item collaborative signal
    - index: In-memory vector search index
    - candidates: Context filtering and index narrowing
    - scoring: Hybrid scoring engine
    - explainer: Recommendation reasons
    - recommender: Main recommendation orchestrator
    - difficulty: Dynamic difficulty assessment
    - resonance: Forecast vs. outcome resonance tracking
    - cli: Command-line interface
"""

__version__ = "1.0.0"
__author__ = "GamePilot Team"
