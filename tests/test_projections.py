import numpy as np
import pytest

from tpcstereo.errors import DegenerateFitError
from tpcstereo.physics.events import Event
from tpcstereo.physics.hits import Cluster2D, Hit, Vertex2D
from tpcstereo.reco.diagnostics import ReconDiagnostics
from tpcstereo.reco.projections import build_projections, fit_projection, passes_vertex_window


def test_fit_exact_line(context, hit_factory):
    _, conv, _ = context
    hits = [hit_factory(0, w, 100 + 2 * (w - 10)) for w in (12, 10, 11)]  # unsorted on input
    cl = Cluster2D.from_hits(0, hits, index=3)
    assert [h.wire for h in cl.hits] == [10, 11, 12]

    proj = fit_projection(cl, conv)
    assert proj.cluster_index == 3
    assert proj.start == pytest.approx(conv.hit_to_cm(cl.hits[0]))
    assert proj.end == pytest.approx(conv.hit_to_cm(cl.hits[-1]))
    # hits lie on a line, so fitted and measured endpoints coincide
    assert proj.start_line == pytest.approx(proj.start[1])
    assert proj.end_line == pytest.approx(proj.end[1])
    assert proj.slope > 0
    assert proj.length == pytest.approx(np.hypot(proj.end_line - proj.start_line, proj.end[0] - proj.start[0]))


def test_fit_line_evaluated_endpoints(context, hit_factory):
    _, conv, _ = context
    hits = [hit_factory(0, w, t) for w, t in ((10, 100), (11, 110), (12, 102), (13, 112))]
    proj = fit_projection(Cluster2D.from_hits(0, hits), conv)
    assert proj.start_line == pytest.approx(proj.line_time(proj.start_wire))
    assert proj.end_line == pytest.approx(proj.line_time(proj.end_wire))
    assert proj.start_line != pytest.approx(proj.start[1])


def test_single_hit_cluster_is_degenerate(context, hit_factory):
    _, conv, _ = context
    with pytest.raises(DegenerateFitError):
        fit_projection(Cluster2D.from_hits(0, [hit_factory(0, 5, 100)]), conv)


def test_same_wire_cluster_is_degenerate(context, hit_factory):
    _, conv, _ = context
    hits = [hit_factory(0, 5, 100), hit_factory(0, 5, 120)]
    with pytest.raises(DegenerateFitError):
        fit_projection(Cluster2D.from_hits(0, hits), conv)


def test_vertex_window(hit_factory):
    hits = [hit_factory(0, w, 100 + 2 * (w - 10)) for w in range(10, 15)]
    cl = Cluster2D.from_hits(0, hits)
    assert cl.dtdw == pytest.approx(2.0)
    # provisional line at wire 20 -> 120 ticks
    assert passes_vertex_window(cl, None, 5.0)
    assert passes_vertex_window(cl, Vertex2D(view=0, wire=20, time=123.0), 5.0)
    assert not passes_vertex_window(cl, Vertex2D(view=0, wire=20, time=130.0), 5.0)


def test_recorded_start_and_slope_drive_vertex_window(hit_factory):
    hits = [hit_factory(0, w, 100) for w in range(10, 15)]
    cl = Cluster2D.from_hits(0, hits, start_wire=10, start_time=100, dtdw=-1.0)
    assert cl.time_at_wire(20) == pytest.approx(90.0)
    assert passes_vertex_window(cl, Vertex2D(view=0, wire=20, time=92.0), 5.0)
    assert not passes_vertex_window(cl, Vertex2D(view=0, wire=20, time=100.0), 5.0)


def test_build_projections_filters(context, hit_factory):
    _, conv, params = context
    good_a = [hit_factory(0, w, 100 + w) for w in range(10, 14)]
    far_a = [hit_factory(0, w, 900 + w) for w in range(30, 34)]
    single_b = [hit_factory(1, 40, 100)]
    good_b = [hit_factory(1, w, 100 + w) for w in range(20, 24)]
    hits = good_a + far_a + single_b + good_b
    ev = Event(
        event_id=7,
        hits=hits,
        clusters=[
            Cluster2D.from_hits(0, good_a),
            Cluster2D.from_hits(0, far_a),
            Cluster2D.from_hits(1, single_b),
            Cluster2D.from_hits(1, good_b),
        ],
        vertices=[Vertex2D(view=0, wire=10, time=110)],
    )
    diag = ReconDiagnostics()
    out = build_projections(ev, conv, params, diag=diag, verbose=0)

    assert [p.cluster_index for p in out[0]] == [0]
    assert [p.cluster_index for p in out[1]] == [3]
    assert diag.vertex_rejected == 1
    assert diag.degenerate_fit == 1
    assert diag.projections_a == 1 and diag.projections_b == 1


def test_other_views_ignored(three_plane_context):
    geometry, conv, params = three_plane_context
    hits = [Hit.from_channel(geometry.plane_wire_to_channel(0, w), 100 + w, geometry) for w in range(10, 14)]
    w_hits = [Hit.from_channel(geometry.plane_wire_to_channel(2, w), 100.0, geometry) for w in range(3)]
    ev = Event(
        event_id=0,
        hits=hits + w_hits,
        clusters=[Cluster2D.from_hits(0, hits), Cluster2D.from_hits(2, w_hits)],
    )
    diag = ReconDiagnostics()
    out = build_projections(ev, conv, params, diag=diag, verbose=0)
    assert set(out) == {0, 1}
    assert diag.clusters_other_view == 1
