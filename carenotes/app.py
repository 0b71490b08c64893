import os

import click
from flask import Flask, abort, current_app, jsonify, request
from flask_cors import CORS

from .config import Config, level_from_route
from .db import Database, get_current_time
from .errors import NotFoundError, StorageError, ValidationError
from .hierarchy import HierarchyStore
from .notes import NoteStore
from .seed import encrypt_seed_file, import_seed, load_seed_file
from .tree import build_tree, flatten_tree


class Services:
    def __init__(self, db):
        self.db = db
        self.notes = NoteStore(db)
        self.hierarchy = HierarchyStore(db, self.notes)


def _services():
    return current_app.extensions["carenotes"]


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _level_or_404(level_name):
    level = level_from_route(level_name, current_app.config["HIERARCHY_LEVELS"])
    if level is None:
        abort(404, description=f"Unknown hierarchy level: {level_name}")
    return level


def _with_parent(node):
    parent = _services().hierarchy.get_parent(node["id"])
    return {**node, "parent_id": parent["id"] if parent else None}


def _check_parent_level(level, parent_id):
    """
    Level policy for this deployment: organisations are roots, every other
    level hangs off the level directly above it.
    """
    levels = current_app.config["HIERARCHY_LEVELS"]
    if parent_id is not None and not isinstance(parent_id, str):
        raise ValidationError("parent_id must be a node id")
    index = levels.index(level)

    if index == 0:
        if parent_id:
            raise ValidationError(f"A {level} cannot have a parent")
        return

    if not parent_id:
        raise ValidationError(f"A {level} requires a parent {levels[index - 1]}")
    parent = _services().hierarchy.get_node_by_id(parent_id)
    if parent is None:
        raise NotFoundError(f"Parent node not found: {parent_id}")
    if parent["type"] != levels[index - 1]:
        raise ValidationError(f"Parent of a {level} must be a {levels[index - 1]}, got {parent['type']}")


def _node_of_level_or_404(level, node_id):
    node = _services().hierarchy.get_node_by_id(node_id)
    if node is None or node["type"] != level:
        return None
    return node


def register_routes(app):

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({"status": "OK", "timestamp": get_current_time()})

    @app.route('/api/data', methods=['GET'])
    def get_data():
        services = _services()
        tree = build_tree(services.hierarchy, services.notes, current_app.config["HIERARCHY_LEVELS"])
        return jsonify({"tree": tree, **flatten_tree(tree), "notes": services.notes.list_notes()})

    # --- Notes ---

    @app.route('/api/notes', methods=['GET'])
    def list_notes():
        return jsonify(_services().notes.list_notes())

    @app.route('/api/notes', methods=['POST'])
    def create_note():
        data = _json_body()
        note = _services().notes.create_note(
            data.get('content'), data.get('attached_to_id'), data.get('tags', [])
        )
        return jsonify(note), 201

    @app.route('/api/notes/<note_id>', methods=['GET'])
    def get_note(note_id):
        note = _services().notes.get_note(note_id)
        if not note:
            return jsonify({"error": "Note not found"}), 404
        return jsonify(note)

    @app.route('/api/notes/<note_id>', methods=['PUT'])
    def update_note(note_id):
        data = _json_body()
        note = _services().notes.update_note(note_id, data.get('content'), data.get('tags'))
        if not note:
            return jsonify({"error": "Note not found"}), 404
        return jsonify(note)

    @app.route('/api/notes/<note_id>', methods=['DELETE'])
    def delete_note(note_id):
        if not _services().notes.delete_note(note_id):
            return jsonify({"error": "Note not found"}), 404
        return jsonify({"message": "Note deleted successfully"})

    # --- Node relations ---

    @app.route('/api/nodes/<node_id>/notes', methods=['GET'])
    def node_notes(node_id):
        if _services().hierarchy.get_node_by_id(node_id) is None:
            return jsonify({"error": "Item not found"}), 404
        return jsonify(_services().notes.list_notes_for_node(node_id))

    @app.route('/api/nodes/<node_id>/<relation>', methods=['GET'])
    def node_relation(node_id, relation):
        hierarchy = _services().hierarchy
        if hierarchy.get_node_by_id(node_id) is None:
            return jsonify({"error": "Item not found"}), 404

        if relation == 'children':
            depth = request.args.get('depth', 1, type=int)
            if depth < 1:
                raise ValidationError("depth must be at least 1")
            return jsonify(hierarchy.get_children(node_id, depth))
        if relation == 'descendants':
            return jsonify(hierarchy.get_all_descendants(node_id))
        if relation == 'ancestors':
            return jsonify(hierarchy.get_ancestors(node_id))
        if relation == 'parent':
            return jsonify(hierarchy.get_parent(node_id))
        abort(404, description=f"Unknown relation: {relation}")

    # --- Hierarchy items ---

    @app.route('/api/<level_name>', methods=['GET'])
    def list_items(level_name):
        level = _level_or_404(level_name)
        items = _services().hierarchy.get_nodes_by_type(level)
        return jsonify([_with_parent(item) for item in items])

    @app.route('/api/<level_name>', methods=['POST'])
    def create_item(level_name):
        level = _level_or_404(level_name)
        data = _json_body()
        name = data.get('name')
        parent_id = data.get('parent_id')

        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Name is required")
        _check_parent_level(level, parent_id)

        node = _services().hierarchy.create_node(level, name, parent_id)
        return jsonify({**node, "parent_id": parent_id}), 201

    @app.route('/api/<level_name>/<node_id>', methods=['GET'])
    def get_item(level_name, node_id):
        level = _level_or_404(level_name)
        node = _node_of_level_or_404(level, node_id)
        if not node:
            return jsonify({"error": "Item not found"}), 404
        return jsonify(_with_parent(node))

    @app.route('/api/<level_name>/<node_id>', methods=['PUT'])
    def update_item(level_name, node_id):
        level = _level_or_404(level_name)
        data = _json_body()
        if not _node_of_level_or_404(level, node_id):
            return jsonify({"error": "Item not found"}), 404

        node = _services().hierarchy.update_node(node_id, data.get('name'))
        if not node:
            return jsonify({"error": "Item not found"}), 404
        return jsonify(_with_parent(node))

    @app.route('/api/<level_name>/<node_id>', methods=['DELETE'])
    def delete_item(level_name, node_id):
        level = _level_or_404(level_name)
        if not _node_of_level_or_404(level, node_id):
            return jsonify({"error": "Item not found"}), 404

        deleted_count = _services().hierarchy.delete_node_and_descendants(node_id)
        return jsonify({
            "message": "Item and all children deleted successfully",
            "deleted_count": deleted_count,
        })


def register_error_handlers(app):

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(StorageError)
    def handle_storage_error(e):
        current_app.logger.exception("Storage failure on %s %s", request.method, request.path)
        return jsonify({"error": "Storage failure"}), 500

    @app.errorhandler(404)
    def handle_404(e):
        return jsonify({"error": e.description}), 404


def register_commands(app):

    @app.cli.command('init-db')
    def init_db_command():
        """Create the hierarchy and notes tables."""
        _services().db.create_all()
        click.echo(f"Initialized database at {current_app.config['DATABASE_URL']}")

    @app.cli.command('seed')
    @click.argument('path', required=False)
    def seed_command(path):
        """Import a (possibly encrypted) seed file."""
        path = path or current_app.config['SEED_FILE']
        if not os.path.exists(path):
            raise click.ClickException(f"Seed file not found: {path}")

        services = _services()
        try:
            data = load_seed_file(path, current_app.config['KEY_FILE'])
            counts = import_seed(services.hierarchy, services.notes, data, current_app.config['HIERARCHY_LEVELS'])
        except (ValidationError, NotFoundError) as e:
            raise click.ClickException(str(e))
        for name, count in counts.items():
            click.echo(f"Imported {count} {name}")

    @app.cli.command('encrypt-seed')
    @click.argument('path', required=False)
    def encrypt_seed_command(path):
        """Encrypt a plain seed file in place, creating the key file if needed."""
        path = path or current_app.config['SEED_FILE']
        if not os.path.exists(path):
            raise click.ClickException(f"Seed file not found: {path}")

        key_file = current_app.config['KEY_FILE']
        if encrypt_seed_file(path, key_file):
            click.echo(f"Encrypted {path} with {key_file}")
        else:
            click.echo(f"{path} is already encrypted.")


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    CORS(app)

    db = Database(app.config['DATABASE_URL'], echo=app.config['SQL_ECHO'])
    db.create_all()
    app.extensions["carenotes"] = Services(db)

    register_routes(app)
    register_error_handlers(app)
    register_commands(app)
    return app
