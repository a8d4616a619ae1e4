from flask import Blueprint, request, jsonify, g
from sqlalchemy.exc import IntegrityError

from models import db
from models.favorite import Favorite
from models.field import Field
from utils.auth_context import login_required

favorites_bp = Blueprint("favorites", __name__, url_prefix="/favorites")


@favorites_bp.get("")
@login_required
def list_favorites():
    rows = (
        Favorite.query
        .filter_by(user_id=g.user.id)
        .order_by(Favorite.created_at.desc())
        .all()
    )
    out = []
    for fav in rows:
        f = fav.field
        if f is None:
            continue
        main = next((img.url for img in f.images if img.is_main), None)
        out.append({
            "id": fav.id,
            "field_id": f.id,
            "name": f.name,
            "location": f.location,
            "price": f.price_per_hour,
            "active": f.active,
            "image": main,
        })
    return jsonify(out), 200


@favorites_bp.post("")
@login_required
def add_favorite():
    data = request.get_json(silent=True) or {}
    try:
        field_id = int(data.get("field_id"))
    except (TypeError, ValueError):
        return jsonify(error="field_id required"), 400

    if not db.session.get(Field, field_id):
        return jsonify(error="Field not found"), 404

    fav = Favorite(user_id=g.user.id, field_id=field_id)
    db.session.add(fav)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Already in favorites"), 409

    return jsonify(id=fav.id, field_id=field_id), 201


@favorites_bp.delete("/<int:favorite_id>")
@login_required
def remove_favorite(favorite_id: int):
    fav = db.session.get(Favorite, favorite_id)
    if not fav or fav.user_id != g.user.id:
        return jsonify(error="Favorite not found"), 404

    db.session.delete(fav)
    db.session.commit()
    return jsonify(message="Removed"), 200
