from mafc.flows.graph import build_turn_graph
from mafc.flows.state import TurnState

__all__ = ["TurnState", "build_turn_graph"]
