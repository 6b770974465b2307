"""All Dash callbacks for the cluster explorer app.

Callbacks run on Flask worker threads; every read or write of explorer
state goes through ``state.call`` / ``state.submit`` so it executes on the
explorer's event loop.
"""

from __future__ import annotations

from dash import ALL, Input, Output, Patch, State, callback_context, html, no_update
from dash.exceptions import PreventUpdate

from ..explorer.state import ViewMode
from ..features import format_feature_name
from ..io import cluster_share_query, parse_cluster_query
from ..models import RequestStatus
from ..visualization.colors import contrast_color
from . import theme
from .figures import build_planar_figure, build_spatial_figure

# Max display length for track names in cards
_MAX_NAME_LEN = 28
# Member tracks shown for the selected cluster
_MEMBER_PREVIEW = 6

_AXIS_IDS = {
    ViewMode.PLANAR: ["planar-x-axis", "planar-y-axis"],
    ViewMode.SPATIAL: ["spatial-x-axis", "spatial-y-axis", "spatial-z-axis"],
}

_VIEWPORT_JS = """
function(n, current) {
    var el = document.getElementById('panel-planar');
    if (!el || !el.clientWidth) { return window.dash_clientside.no_update; }
    var width = Math.min(el.clientWidth, MAX_WIDTH);
    return width === current ? window.dash_clientside.no_update : width;
}
"""


def _trunc(text: str, maxlen: int = _MAX_NAME_LEN) -> str:
    """Truncate text with ellipsis if too long."""
    s = str(text)
    return s[:maxlen - 2] + ".." if len(s) > maxlen else s


def register(app):
    """Register all callbacks on the Dash app instance."""
    from .app import state as _state

    max_width = _state.session.config.viewport.width if _state is not None else 800

    # ------------------------------------------------------------------ #
    #  View tab toggle
    # ------------------------------------------------------------------ #

    @app.callback(
        Output("panel-planar", "style"),
        Output("panel-spatial", "style"),
        Output("panel-planar-controls", "style"),
        Output("panel-spatial-controls", "style"),
        Input("view-tabs", "value"),
    )
    def toggle_view(tab_value):
        from .app import state
        mode = ViewMode(tab_value or "planar")
        if state is not None:
            state.call(state.session.set_mode, mode)
        shown, hidden = {"display": "block"}, {"display": "none"}
        if mode is ViewMode.PLANAR:
            return shown, hidden, shown, hidden
        return hidden, shown, hidden, shown

    # ------------------------------------------------------------------ #
    #  Frame poll: publish generation / status / recommendation changes
    # ------------------------------------------------------------------ #

    @app.callback(
        Output("generation-store", "data"),
        Output("recommendations-signature", "data"),
        Output("status-bar", "children"),
        Output("error-banner", "children"),
        Output("error-banner", "style"),
        Output("recompute-status", "children"),
        Output("loading-placeholder", "style"),
        Input("frame-tick", "n_intervals"),
        State("generation-store", "data"),
        State("recommendations-signature", "data"),
    )
    def poll(n_intervals, generation, signature):
        from .app import state
        if state is None:
            raise PreventUpdate

        view = state.call(state.session.view)
        recs = view.recommendations
        new_signature = [
            recs.cluster_id, recs.generation, recs.status.value, len(recs.items), recs.error,
        ]

        if view.error:
            banner = [
                html.Span(view.error),
                html.Span(" The last loaded clusters are still shown.",
                          className="hint") if view.snapshot is not None else None,
            ]
            banner_style = {"display": "block", "color": theme.ERROR}
        else:
            banner, banner_style = None, {"display": "none"}

        return (
            view.generation if view.generation != generation else no_update,
            new_signature if new_signature != signature else no_update,
            _status_text(view),
            banner,
            banner_style,
            "Reclustering..." if view.recompute_busy else "",
            {"display": "block"} if view.loading and view.snapshot is None else {"display": "none"},
        )

    # ------------------------------------------------------------------ #
    #  New snapshot → axis options, selector, selection
    # ------------------------------------------------------------------ #

    @app.callback(
        *[Output(cid, "options") for ids in _AXIS_IDS.values() for cid in ids],
        *[Output(cid, "value") for ids in _AXIS_IDS.values() for cid in ids],
        Output("feature-set", "options"),
        Output("selected-cluster-store", "data", allow_duplicate=True),
        Output("track-tooltip", "show", allow_duplicate=True),
        Input("generation-store", "data"),
        prevent_initial_call=True,
    )
    def on_generation(generation):
        from .app import state
        if state is None or not generation:
            raise PreventUpdate

        session = state.session

        def _read():
            return (
                session.snapshot,
                session.interaction.selection,
                session.available_features(),
            )

        snapshot, selection, available = state.call(_read)
        if snapshot is None:
            raise PreventUpdate

        options = [{"label": format_feature_name(f), "value": f} for f in snapshot.features_used]
        axis_ids = [cid for ids in _AXIS_IDS.values() for cid in ids]
        values = list(selection.planar_axes) + list(selection.spatial_axes)
        feature_options = [{"label": format_feature_name(f), "value": f} for f in available]
        return (
            *([options] * len(axis_ids)),
            *values,
            feature_options,
            selection.cluster_id,
            # hover was reset with the snapshot
            False,
        )

    # ------------------------------------------------------------------ #
    #  Figures
    # ------------------------------------------------------------------ #

    @app.callback(
        Output("planar-graph", "figure"),
        Input("planar-x-axis", "value"),
        Input("planar-y-axis", "value"),
        Input("generation-store", "data"),
        Input("viewport-store", "data"),
        Input("selected-cluster-store", "data"),
    )
    def update_planar_figure(x_feature, y_feature, generation, viewport_width, selected):
        from .app import state
        if state is None:
            raise PreventUpdate

        session = state.session
        viewport = session.config.viewport
        if viewport_width and viewport_width > viewport.margin_left + viewport.margin_right:
            viewport = viewport.resized(int(viewport_width))

        def _project():
            for index, feature in enumerate((x_feature, y_feature)):
                if feature:
                    session.set_axis(index, feature, ViewMode.PLANAR)
            return session.snapshot, session.projection(ViewMode.PLANAR, viewport), \
                session.interaction.selection.cluster_id

        snapshot, projection, cluster_id = state.call(_project)
        return build_planar_figure(
            snapshot, projection, state.color_map, viewport, selected_cluster=cluster_id,
        )

    @app.callback(
        Output("spatial-graph", "figure"),
        Input("spatial-x-axis", "value"),
        Input("spatial-y-axis", "value"),
        Input("spatial-z-axis", "value"),
        Input("generation-store", "data"),
        Input("selected-cluster-store", "data"),
    )
    def update_spatial_figure(x_feature, y_feature, z_feature, generation, selected):
        from .app import state
        if state is None:
            raise PreventUpdate

        session = state.session

        def _project():
            for index, feature in enumerate((x_feature, y_feature, z_feature)):
                if feature:
                    session.set_axis(index, feature, ViewMode.SPATIAL)
            return (
                session.snapshot,
                session.projection(ViewMode.SPATIAL),
                session.interaction.selection.cluster_id,
                session.camera(),
            )

        snapshot, projection, cluster_id, eye = state.call(_project)
        return build_spatial_figure(
            snapshot, projection, state.color_map,
            extent=session.config.spatial_extent,
            camera_eye=eye,
            selected_cluster=cluster_id,
        )

    @app.callback(
        Output("spatial-graph", "figure", allow_duplicate=True),
        Input("rotation-tick", "n_intervals"),
        State("auto-rotate", "value"),
        State("view-tabs", "value"),
        prevent_initial_call=True,
    )
    def rotate_scene(n_intervals, auto_rotate, tab_value):
        """Per-frame camera position: a pure function of elapsed time."""
        from .app import state
        if state is None or tab_value != ViewMode.SPATIAL.value or "on" not in (auto_rotate or []):
            raise PreventUpdate

        patched = Patch()
        patched["layout"]["scene"]["camera"]["eye"] = state.call(state.session.camera)
        return patched

    app.clientside_callback(
        _VIEWPORT_JS.replace("MAX_WIDTH", str(max_width)),
        Output("viewport-store", "data"),
        Input("frame-tick", "n_intervals"),
        State("viewport-store", "data"),
    )

    # ------------------------------------------------------------------ #
    #  Hover → tooltip
    # ------------------------------------------------------------------ #

    @app.callback(
        Output("track-tooltip", "show"),
        Output("track-tooltip", "bbox"),
        Output("track-tooltip", "children"),
        Input("planar-graph", "hoverData"),
        Input("spatial-graph", "hoverData"),
    )
    def on_hover(planar_hover, spatial_hover):
        from .app import state
        if state is None:
            raise PreventUpdate

        ctx = callback_context
        trigger_id = ctx.triggered[0]["prop_id"].split(".")[0] if ctx.triggered else ""
        hover_data = planar_hover if trigger_id == "planar-graph" else spatial_hover
        session = state.session

        point = _track_point(hover_data)
        if point is None:
            state.call(session.pointer_leave)
            return False, no_update, no_update

        item_id = str(point["customdata"][0])
        bbox = point.get("bbox") or {"x0": 16, "x1": 16, "y0": 16, "y1": 16}

        def _hover():
            if not session.pointer_move(item_id, bbox["x0"], bbox["y0"]):
                session.pointer_leave()
                return None
            return session.tooltip()

        content = state.call(_hover)
        if content is None:
            return False, no_update, no_update
        return True, bbox, _tooltip_children(content, state.color_map.color(content["cluster"]))

    # ------------------------------------------------------------------ #
    #  Cluster selection
    # ------------------------------------------------------------------ #

    @app.callback(
        Output("selected-cluster-store", "data"),
        Input({"type": "cluster-btn", "index": ALL}, "n_clicks"),
        Input("planar-graph", "clickData"),
        Input("spatial-graph", "clickData"),
        prevent_initial_call=True,
    )
    def on_select_cluster(button_clicks, planar_click, spatial_click):
        from .app import state
        if state is None:
            raise PreventUpdate

        ctx = callback_context
        if not ctx.triggered:
            raise PreventUpdate
        trigger = ctx.triggered_id

        if isinstance(trigger, dict) and trigger.get("type") == "cluster-btn":
            if not ctx.triggered[0]["value"]:
                raise PreventUpdate
            cluster_id = int(trigger["index"])
        else:
            click = planar_click if trigger == "planar-graph" else spatial_click
            point = _track_point(click)
            if point is None:
                raise PreventUpdate
            cluster_id = int(point["customdata"][1])

        if not state.call(state.session.select_cluster, cluster_id):
            raise PreventUpdate
        return cluster_id

    @app.callback(
        Output("selected-cluster-store", "data", allow_duplicate=True),
        Input("url", "search"),
        prevent_initial_call="initial_duplicate",
    )
    def apply_url_cluster(search):
        """``?cluster=N`` preselects cluster N once it exists."""
        from .app import state
        cluster_id = parse_cluster_query(search)
        if state is None or cluster_id is None:
            raise PreventUpdate

        session = state.session

        def _prefer():
            if session.snapshot is None:
                session.preferred_cluster = cluster_id
            return session.select_cluster(cluster_id)

        if not state.call(_prefer):
            raise PreventUpdate
        return cluster_id

    @app.callback(
        Output("cluster-selector", "children"),
        Output("members-heading", "children"),
        Output("members-panel", "children"),
        Output("share-link", "href"),
        Output("share-link", "style"),
        Input("selected-cluster-store", "data"),
        Input("generation-store", "data"),
    )
    def render_cluster_panel(selected, generation):
        from .app import state
        if state is None:
            raise PreventUpdate

        session = state.session

        def _read():
            snapshot = session.snapshot
            return snapshot, session.interaction.selection.cluster_id

        snapshot, cluster_id = state.call(_read)
        if snapshot is None or cluster_id is None:
            return [], "Cluster Tracks", html.Div("No clusters yet", className="hint"), "", \
                {"display": "none"}

        color = state.color_map.color(cluster_id)
        buttons = [
            _cluster_button(cid, state.color_map.color(cid), cid == cluster_id)
            for cid in snapshot.cluster_ids
        ]
        members = snapshot.members(cluster_id)
        heading = [
            f"Cluster {cluster_id} Tracks",
            html.Span(
                f"{len(members)} tracks",
                className="badge",
                style={"backgroundColor": color, "color": contrast_color(color)},
            ),
        ]
        cards = [_track_card(t, color) for t in members[:_MEMBER_PREVIEW]]
        return buttons, heading, cards, cluster_share_query(cluster_id), {"display": "inline-block"}

    # ------------------------------------------------------------------ #
    #  Recommendations
    # ------------------------------------------------------------------ #

    @app.callback(
        Output("recommendations-heading", "children"),
        Output("recommendations-panel", "children"),
        Output("recommendations-retry-btn", "style"),
        Input("recommendations-signature", "data"),
    )
    def render_recommendations(signature):
        from .app import state
        if state is None:
            raise PreventUpdate

        recs = state.call(lambda: state.session.recommendations.state)
        hidden = {"display": "none"}
        if recs.cluster_id is None:
            return "Recommendations", html.Div("Select a cluster", className="hint"), hidden

        heading = f"Recommendations Based on Cluster {recs.cluster_id}"
        color = state.color_map.color(recs.cluster_id)
        if recs.status is RequestStatus.PENDING:
            return heading, html.Div(className="loading-spinner"), hidden
        if recs.status is RequestStatus.FAILED:
            message = html.Div(
                f"Could not load recommendations: {recs.error}",
                style={"color": theme.ERROR},
            )
            return heading, message, {"display": "block"}
        if recs.is_empty_result:
            return heading, html.P("No recommendations available for this cluster."), hidden
        return heading, [_recommendation_card(r, color) for r in recs.items], hidden

    @app.callback(
        Output("recommendations-retry-btn", "style", allow_duplicate=True),
        Input("recommendations-retry-btn", "n_clicks"),
        prevent_initial_call=True,
    )
    def retry_recommendations(n_clicks):
        from .app import state
        if state is None or not n_clicks:
            raise PreventUpdate
        state.call(state.session.retry_recommendations)
        return {"display": "none"}

    # ------------------------------------------------------------------ #
    #  Recompute clustering
    # ------------------------------------------------------------------ #

    @app.callback(
        Output("recompute-status", "children", allow_duplicate=True),
        Input("recompute-btn", "n_clicks"),
        State("n-clusters", "value"),
        State("feature-set", "value"),
        prevent_initial_call=True,
    )
    def recompute(n_clicks, n_clusters, features):
        from .app import state
        if state is None or not n_clicks:
            raise PreventUpdate

        session = state.session

        def _stage():
            # Rejections surface through the error banner on the next poll
            if n_clusters is None or not session.set_cluster_count(int(n_clusters)):
                session.parameter_error = "Number of clusters must be between 2 and 10"
            elif not session.set_feature_set(features or []):
                session.parameter_error = "Select at least one known feature"
            else:
                return True
            return False

        if not state.call(_stage):
            return ""
        state.submit(session.recompute())
        return "Reclustering..."


# ------------------------------------------------------------------ #
#  Helpers
# ------------------------------------------------------------------ #

def _track_point(event_data):
    """First point of a hover/click event if it belongs to the tracks trace."""
    if not event_data:
        return None
    points = event_data.get("points") or []
    if not points:
        return None
    point = points[0]
    customdata = point.get("customdata")
    if point.get("curveNumber") != 0 or not customdata or len(customdata) < 2:
        return None
    return point


def _status_text(view) -> str:
    if view.loading and view.snapshot is None:
        return "Loading your tracks..."
    snapshot = view.snapshot
    if snapshot is None:
        return "No tracks to display"
    parts = [f"{len(snapshot):,} tracks", f"{len(snapshot.cluster_ids)} clusters"]
    if snapshot.inertia is not None:
        parts.append(f"inertia {snapshot.inertia:.2f}")
    return " · ".join(parts)


def _tooltip_children(content: dict, color: str) -> html.Div:
    return html.Div(
        className="track-tooltip",
        children=[
            html.P(content["name"], style={"fontWeight": "700", "marginBottom": "2px"}),
            html.P(f"by {content['artist']}", className="hint"),
            html.P(
                f"Cluster: {content['cluster']}",
                style={"color": color, "fontWeight": "700"},
            ),
            *[html.P(f"{label}: {value}") for label, value in content["values"]],
        ],
    )


def _cluster_button(cluster_id: int, color: str, active: bool) -> html.Button:
    style = {"borderColor": color}
    if active:
        style.update(backgroundColor=color, color=contrast_color(color))
    return html.Button(
        f"Cluster {cluster_id}",
        id={"type": "cluster-btn", "index": cluster_id},
        className="cluster-btn" + (" cluster-btn-active" if active else ""),
        style=style,
    )


def _track_card(track, color: str) -> html.Div:
    return html.Div(
        className="track-card",
        children=[
            html.Img(src=track.album_cover, className="album-cover") if track.album_cover else None,
            html.Div(
                className="card-content",
                children=[
                    html.Span(className="color-dot", style={"backgroundColor": color}),
                    html.Span(_trunc(track.name), title=track.name, className="card-title"),
                    html.Div(track.artist, className="hint"),
                ],
            ),
        ],
    )


def _recommendation_card(item, color: str) -> html.Div:
    return html.Div(
        className="track-card",
        children=[
            html.Img(src=item.image_url, className="album-cover") if item.image_url else None,
            html.Div(
                className="card-content",
                children=[
                    html.Span(className="color-dot", style={"backgroundColor": color}),
                    html.Span(_trunc(item.name), title=item.name, className="card-title"),
                    html.Div(item.artist, className="hint"),
                    html.A("Play on Spotify", href=item.external_url, target="_blank",
                           className="btn-primary") if item.external_url else None,
                ],
            ),
        ],
    )
