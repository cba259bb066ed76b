import pytest

from itergraph import IterationEngine, IteratorNode, IteratorNodeData

from .subgraphs import RecordingSubgraph, doubled, number_items


def graph_port(reference):
    return {"type": "graph-reference", "value": reference}


def items_port(*values):
    return {"type": "object[]", "value": number_items(*values)}


@pytest.mark.anyio
async def test_process_outputs_results(engine, reference):
    node = IteratorNode(engine)

    outputs = await node.process(
        {"graph": graph_port(reference), "iteratorInputs": items_port(1, 2, 3)}
    )

    assert outputs == {
        "iteratorOutputs": {"type": "object[]", "value": doubled(1, 2, 3)}
    }


@pytest.mark.anyio
async def test_process_failure_excludes_outputs(project, reference):
    node = IteratorNode(IterationEngine(project, RecordingSubgraph(fail_on={1})))

    outputs = await node.process(
        {"graph": graph_port(reference), "iteratorInputs": items_port(1)}
    )

    assert outputs["iteratorOutputs"] == {
        "type": "control-flow-excluded",
        "value": None,
    }
    assert outputs["error"]["type"] == "string"
    assert outputs["error"]["value"].startswith("ItemIndex: 0::")


@pytest.mark.anyio
@pytest.mark.parametrize(
    "items",
    ({"type": "object[]", "value": "nope"}, [1, 2], None),
    ids=("not-array", "not-objects", "missing"),
)
async def test_process_rejects_malformed_items(engine, subgraph, reference, items):
    outputs = await IteratorNode(engine).process(
        {"graph": graph_port(reference), "iteratorInputs": items}
    )

    assert outputs["iteratorOutputs"]["type"] == "control-flow-excluded"
    assert "array of objects" in outputs["error"]["value"]
    assert subgraph.calls == []


@pytest.mark.anyio
async def test_process_rejects_malformed_graph_reference(engine, subgraph):
    outputs = await IteratorNode(engine).process(
        {"graph": {"type": "graph-reference", "value": 42}, "iteratorInputs": []}
    )

    assert outputs["iteratorOutputs"]["type"] == "control-flow-excluded"
    assert "not a valid graph reference" in outputs["error"]["value"]


@pytest.mark.anyio
async def test_chunk_size_port_requires_toggle(engine, subgraph, reference):
    inputs = {
        "graph": graph_port(reference),
        "iteratorInputs": items_port(1, 2, 3, 4),
        "chunkSize": {"type": "number", "value": 4},
    }

    await IteratorNode(engine, IteratorNodeData(chunk_size=2)).process(inputs)
    assert subgraph.max_in_flight == 2

    subgraph.max_in_flight = 0
    node = IteratorNode(
        engine, IteratorNodeData(chunk_size=2, use_chunk_size_toggle=True)
    )
    await node.process(inputs)
    assert subgraph.max_in_flight == 4


@pytest.mark.anyio
@pytest.mark.parametrize("chunk_size", ("abc", [3], float("inf")))
async def test_unusable_chunk_size_falls_back_to_node_data(
    engine, subgraph, reference, chunk_size
):
    node = IteratorNode(
        engine, IteratorNodeData(chunk_size=2, use_chunk_size_toggle=True)
    )

    outputs = await node.process(
        {
            "graph": graph_port(reference),
            "iteratorInputs": items_port(1, 2, 3, 4),
            "chunkSize": {"type": "string", "value": chunk_size},
        }
    )

    assert outputs == {
        "iteratorOutputs": {"type": "object[]", "value": doubled(1, 2, 3, 4)}
    }
    assert subgraph.max_in_flight <= 2


def test_input_ports():
    engine = IterationEngine(None, None)

    assert IteratorNode(engine).input_port_ids() == ["graph", "iteratorInputs"]
    assert IteratorNode(
        engine, IteratorNodeData(useChunkSizeToggle=True)
    ).input_port_ids() == ["graph", "iteratorInputs", "chunkSize"]


@pytest.mark.anyio
async def test_has_cache_reuses_results_per_node(engine, subgraph, reference):
    node = IteratorNode(engine, IteratorNodeData(has_cache=True))
    inputs = {"graph": graph_port(reference), "iteratorInputs": items_port(1, 2)}

    first = await node.process(inputs)
    second = await node.process(inputs)
    await IteratorNode(engine, IteratorNodeData(has_cache=True)).process(inputs)

    assert first == second
    assert len(subgraph.calls) == 4
    assert node.data.node_id in engine.cache


@pytest.mark.anyio
async def test_has_cache_input_overrides_node_data(engine, subgraph, reference):
    node = IteratorNode(engine)
    inputs = {
        "graph": graph_port(reference),
        "iteratorInputs": items_port(1),
        "hasCache": {"type": "boolean", "value": True},
    }

    await node.process(inputs)
    await node.process(inputs)

    assert len(subgraph.calls) == 1
    assert "hasCache" not in IteratorNode(
        engine, IteratorNodeData(has_cache=True)
    ).input_port_ids()
