from fleet_route_map.models import SOURCE_GPS, SOURCE_IP, GeoPoint, LiveSample
from fleet_route_map.route_map import (
    PLANNED_STYLE,
    TRAVELLED_STYLE,
    WAITING_MESSAGE,
    FoliumSurface,
    RouteMapRenderer,
    center_for,
    compute_bounds,
)

PLANNED = [GeoPoint(-8.8390, 13.2894), GeoPoint(-8.9000, 13.2500), GeoPoint(-8.9470, 13.1790)]


def gps(lat, lng):
    return LiveSample(lat=lat, lng=lng, source=SOURCE_GPS)


def test_compute_bounds():
    assert compute_bounds(PLANNED) == ((-8.9470, 13.1790), (-8.8390, 13.2894))
    assert compute_bounds([]) is None


def test_center_prefers_latest_travelled_point():
    travelled = [gps(-8.80, 13.20), gps(-8.81, 13.21)]
    assert center_for(PLANNED, travelled) == GeoPoint(-8.81, 13.21)
    assert center_for(PLANNED, []) == PLANNED[0]
    assert center_for([], [], (None, GeoPoint(1.0, 2.0))) == GeoPoint(1.0, 2.0)
    assert center_for([], []) is None


def test_no_center_shows_placeholder(surface_factory):
    renderer = RouteMapRenderer(surface_factory)
    view = renderer.view([], [])

    assert view.surface is None
    assert view.placeholder == WAITING_MESSAGE
    assert surface_factory.created == []
    assert not renderer.is_initialized


def test_no_center_with_error_shows_error_instead(surface_factory):
    view = RouteMapRenderer(surface_factory).view([], [], error="Não foi possível calcular a rota planeada.")
    assert view.surface is None
    assert view.placeholder is None
    assert view.error == "Não foi possível calcular a rota planeada."


def test_surface_created_once_at_first_center(surface_factory):
    renderer = RouteMapRenderer(surface_factory, zoom=13)
    renderer.view(PLANNED, [])
    renderer.view(PLANNED, [gps(-8.85, 13.28)])

    assert len(surface_factory.created) == 1
    surface = surface_factory.created[0]
    assert surface.center == PLANNED[0]
    assert surface.zoom == 13


def test_planned_and_travelled_lines_with_styles(surface_factory):
    renderer = RouteMapRenderer(surface_factory)
    travelled = [gps(-8.84, 13.29), gps(-8.85, 13.28)]
    view = renderer.view(PLANNED, travelled)

    surface = view.surface
    lines = surface.active("polyline")
    assert [line["style"] for line in lines] == [PLANNED_STYLE, TRAVELLED_STYLE]
    assert lines[0]["points"] == PLANNED
    assert PLANNED_STYLE["dash_array"] == "4 4"
    assert "dash_array" not in TRAVELLED_STYLE


def test_short_paths_are_not_drawn(surface_factory):
    renderer = RouteMapRenderer(surface_factory)
    renderer.view(PLANNED[:1], [gps(-8.84, 13.29)])

    surface = surface_factory.created[0]
    assert surface.active("polyline") == []
    assert surface.fit_calls == []


def test_single_planned_point_and_no_trajectory_draws_nothing(surface_factory):
    renderer = RouteMapRenderer(surface_factory)
    view = renderer.view(PLANNED[:1], [])

    assert view.surface is not None
    assert view.surface.active("polyline") == []


def test_viewport_is_fitted_only_once(surface_factory):
    renderer = RouteMapRenderer(surface_factory, padding=(40, 40))
    renderer.view(PLANNED, [])
    renderer.view(PLANNED, [gps(-8.84, 13.29), gps(-8.85, 13.28)])
    renderer.view(PLANNED, [gps(-8.84, 13.29), gps(-8.85, 13.28), gps(-8.86, 13.27)])

    surface = surface_factory.created[0]
    assert len(surface.fit_calls) == 1
    assert surface.fit_calls[0] == (compute_bounds(PLANNED), (40, 40))
    assert renderer.has_fitted_bounds


def test_fit_waits_for_two_drawable_points(surface_factory):
    renderer = RouteMapRenderer(surface_factory)
    renderer.view([], [gps(-8.84, 13.29)])
    assert surface_factory.created[0].fit_calls == []

    renderer.view([], [gps(-8.84, 13.29), gps(-8.85, 13.28)])
    assert len(surface_factory.created[0].fit_calls) == 1


def test_redraw_does_not_accumulate_layers(surface_factory):
    renderer = RouteMapRenderer(surface_factory)
    travelled = [gps(-8.84, 13.29)]
    for i in range(5):
        travelled.append(gps(-8.85 - i / 100, 13.28))
        renderer.view(PLANNED, travelled, current=travelled[-1])

    surface = surface_factory.created[0]
    assert len(surface.active("polyline")) == 2
    assert len(surface.active("marker")) == 1
    assert len(surface.active("polyline")[1]["points"]) == 6


def test_planned_line_removed_when_route_disappears(surface_factory):
    renderer = RouteMapRenderer(surface_factory)
    renderer.view(PLANNED, [])
    renderer.view([], [gps(-8.84, 13.29)])
    assert surface_factory.created[0].active("polyline") == []


def test_endpoint_and_position_markers(surface_factory):
    renderer = RouteMapRenderer(surface_factory)
    here = LiveSample(lat=-8.83, lng=13.24, source=SOURCE_IP)
    view = renderer.view(PLANNED, [], current=here, start=PLANNED[0], end=PLANNED[-1])

    tooltips = [m["tooltip"] for m in view.surface.active("marker")]
    assert tooltips == ["Origem", "Destino", "Posição actual (IP aproximado)"]


def test_error_is_shown_over_an_existing_map(surface_factory):
    renderer = RouteMapRenderer(surface_factory)
    view = renderer.view([], [gps(-8.84, 13.29)], error="Não foi possível calcular a rota planeada.")
    assert view.surface is not None
    assert view.error == "Não foi possível calcular a rota planeada."


def test_dispose_resets_the_single_fit(surface_factory):
    renderer = RouteMapRenderer(surface_factory)
    renderer.view(PLANNED, [])
    first = surface_factory.created[0]
    renderer.dispose()

    assert first.disposed
    assert not renderer.is_initialized
    assert not renderer.has_fitted_bounds

    renderer.view(PLANNED, [])
    assert len(surface_factory.created) == 2
    assert len(surface_factory.created[1].fit_calls) == 1


def test_update_before_initialization_is_a_no_op(surface_factory):
    renderer = RouteMapRenderer(surface_factory)
    renderer.update(PLANNED, [])
    assert surface_factory.created == []


# ── folium surface ─────────────────────────────────────────────────────

def test_folium_surface_renders_layers_and_attribution():
    surface = FoliumSurface(PLANNED[0], 13)
    renderer = RouteMapRenderer(lambda center, zoom: surface)
    renderer.view(PLANNED, [gps(-8.84, 13.29), gps(-8.85, 13.28)], current=gps(-8.85, 13.28))

    assert surface.layer_count == 3
    assert surface.bounds == compute_bounds(PLANNED + [GeoPoint(-8.84, 13.29), GeoPoint(-8.85, 13.28)])

    html = surface.to_folium().get_root().render()
    assert "OpenStreetMap contributors" in html
    assert "#38bdf8" in html
    assert "#22c55e" in html
    assert "4 4" in html


def test_folium_surface_keeps_user_navigation():
    surface = FoliumSurface(PLANNED[0], 13)
    surface.fit_bounds(compute_bounds(PLANNED), (40, 40))

    surface.sync_view(PLANNED[0], 13)
    assert surface.bounds is not None

    surface.sync_view(GeoPoint(-8.7, 13.1), 15)
    assert surface.bounds is None
    assert surface.zoom == 15
    assert surface.center == GeoPoint(-8.7, 13.1)


def test_folium_surface_dispose():
    surface = FoliumSurface(PLANNED[0])
    layer = surface.add_polyline(PLANNED, PLANNED_STYLE)
    surface.remove_layer(layer)
    assert surface.layer_count == 0

    surface.add_marker(PLANNED[0], "Origem", "green")
    surface.dispose()
    assert surface.layer_count == 0
    assert surface.disposed
