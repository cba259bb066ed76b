import pytest

from itergraph import IterationEngine, Project

from .subgraphs import RecordingSubgraph, doubler_graph


@pytest.fixture
def project() -> Project:
    return Project.from_graphs(doubler_graph())


@pytest.fixture
def subgraph() -> RecordingSubgraph:
    return RecordingSubgraph()


@pytest.fixture
def engine(project, subgraph) -> IterationEngine:
    return IterationEngine(project, subgraph)


@pytest.fixture
def reference() -> dict[str, str]:
    return {"graphId": "doubler", "graphName": "Doubler"}


@pytest.fixture(
    params=[
        pytest.param(("asyncio", {"use_uvloop": False}), id="asyncio"),
        pytest.param(
            ("trio", {"restrict_keyboard_interrupt_to_checkpoints": True}), id="trio"
        ),
    ],
    scope="session",
)
def anyio_backend(request):
    return request.param
