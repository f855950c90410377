import importlib

import matplotlib

import tpcstereo.vis.hdf as vis_hdf


def test_import_keeps_caller_backend():
    prev = matplotlib.get_backend()
    matplotlib.use("svg")
    try:
        importlib.reload(vis_hdf)
        assert matplotlib.get_backend() == "svg"
    finally:
        matplotlib.use(prev)
