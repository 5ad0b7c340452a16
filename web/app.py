#!/usr/bin/env python
"""Flask frontend: hands every page request to the dispatcher and renders it."""

from __future__ import annotations

import logging
import os

from flask import Flask, Response, jsonify, render_template, request, send_from_directory
from flask_cors import CORS

from core.dispatcher import Dispatcher, DispatchResult
from core.events import EventBus, event_bus as global_event_bus
from modules.catalog import build_registry

logger = logging.getLogger("slideshow.web")

dir_path = os.path.dirname(os.path.realpath(__file__))
static_dir = os.path.join(dir_path, "static")
template_dir = os.path.join(dir_path, "templates")

LAYOUTS = {
    "default": "layout_default.html",
    "install": "layout_install.html",
}


def _fatal_response(result: DispatchResult) -> Response:
    return Response(result.fatal_message, status=500, mimetype="text/plain")


def render_result(result: DispatchResult):
    if result.is_fatal:
        return _fatal_response(result)
    page = result.page
    body = render_template(
        page.template,
        layout=LAYOUTS.get(page.layout, LAYOUTS["default"]),
        page=page,
        request_path=result.request_path,
        **page.data,
    )
    return body, page.status


def create_app(
    settings_file=None,
    default_settings_file=None,
    registry=None,
    event_bus: EventBus = None,
) -> Flask:
    app = Flask(__name__, static_folder=None, template_folder=template_dir)
    CORS(app, supports_credentials=True)

    bus = event_bus or global_event_bus
    dispatcher = Dispatcher(
        registry or build_registry(),
        settings_file=settings_file,
        default_settings_file=default_settings_file,
        event_bus=bus,
    )
    app.extensions["slideshow.dispatcher"] = dispatcher

    @app.route('/css/<path:filename>', methods=['GET', 'POST'])
    def sendcss(filename):
        if request.method != 'GET':
            return jsonify({"error": "Static files are read-only"}), 405
        return send_from_directory(os.path.join(static_dir, 'css'), filename)

    @app.route('/api/events')
    def sse_events():
        """Server-sent events stream for dashboard updates."""
        return Response(bus.stream(), mimetype='text/event-stream')

    @app.route('/api/<path:endpoint>', methods=['GET', 'POST'])
    def unknown_api(endpoint):
        return jsonify({"error": f"Unknown API endpoint '/api/{endpoint}'"}), 404

    @app.route('/', defaults={'raw_path': ''}, methods=['GET', 'POST'])
    @app.route('/<path:raw_path>', methods=['GET', 'POST'])
    def dispatch(raw_path):
        result = dispatcher.dispatch(
            raw_path, form=request.form.to_dict(), method=request.method
        )
        logger.info(
            {
                "evt": "request",
                "method": request.method,
                "path": "/" + raw_path,
                "state": result.state.value,
                "module": result.request_path.module,
                "action": result.request_path.action,
            }
        )
        return render_result(result)

    return app
