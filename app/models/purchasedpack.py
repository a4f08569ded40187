"""
Model: PurchasedPack
One row per (user, pack). synced flips to True once every question of the
pack is stored locally.
"""

from db import db, now_utc


class PurchasedPack(db.Model):
    __tablename__ = "purchased_pack"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)
    pack_id = db.Column(db.String(128), nullable=False, index=True)
    purchased_at = db.Column(db.DateTime, default=now_utc)
    transaction_id = db.Column(db.String(255))
    synced = db.Column(db.Boolean, default=False, nullable=False)

    __table_args__ = (db.UniqueConstraint("user_id", "pack_id", name="uq_purchased_pack_user_pack"),)
