"""
Repository for PurchasedPack database operations
"""

from sqlalchemy.exc import SQLAlchemyError
from db import db, now_utc
from exceptions import StoreWriteFailedException
from metrics import track_db_query
from models.purchasedpack import PurchasedPack


class PurchasedPackRepository:
    """Repository for PurchasedPack database operations"""

    @staticmethod
    @track_db_query("purchased_pack.get_by_user")
    def get_by_user(user_id):
        """All purchase records of a user"""
        return PurchasedPack.query.filter_by(user_id=user_id).order_by(PurchasedPack.purchased_at).all()

    @staticmethod
    def get(user_id, pack_id):
        return PurchasedPack.query.filter_by(user_id=user_id, pack_id=pack_id).first()

    @staticmethod
    def has_any(user_id):
        return db.session.query(PurchasedPack.query.filter_by(user_id=user_id).exists()).scalar()

    @staticmethod
    def is_pack_purchased(user_id, pack_id):
        return db.session.query(
            PurchasedPack.query.filter_by(user_id=user_id, pack_id=pack_id).exists()
        ).scalar()

    @staticmethod
    def upsert(user_id, pack_id, transaction_id=None, purchased_at=None, synced=False, commit=True):
        """
        Insert or replace the purchase record for (user_id, pack_id).
        A pack already marked synced stays synced: its questions are still stored.
        """
        try:
            item = PurchasedPack.query.filter_by(user_id=user_id, pack_id=pack_id).first()
            if item is None:
                item = PurchasedPack(user_id=user_id, pack_id=pack_id)
                db.session.add(item)
            item.transaction_id = transaction_id
            item.purchased_at = purchased_at or item.purchased_at or now_utc()
            item.synced = bool(item.synced) or bool(synced)
            if commit:
                db.session.commit()
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreWriteFailedException(str(e))

    @staticmethod
    @track_db_query("purchased_pack.upsert_all")
    def upsert_all(user_id, records):
        """
        Upsert a batch of purchase dicts (pack_id, transaction_id, purchased_at).
        New rows start unsynced; only mark_synced flips the flag, once the
        pack content is stored locally.
        """
        items = []
        try:
            for record in records:
                items.append(
                    PurchasedPackRepository.upsert(
                        user_id,
                        record["pack_id"],
                        transaction_id=record.get("transaction_id"),
                        purchased_at=record.get("purchased_at"),
                        commit=False,
                    )
                )
            db.session.commit()
            return items
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreWriteFailedException(str(e))

    @staticmethod
    def mark_synced(pack_id, user_id=None):
        """Flip synced to True for a pack; all users unless user_id is given"""
        try:
            query = PurchasedPack.query.filter_by(pack_id=pack_id)
            if user_id is not None:
                query = query.filter_by(user_id=user_id)
            count = query.update({PurchasedPack.synced: True}, synchronize_session="fetch")
            db.session.commit()
            return count
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreWriteFailedException(str(e))

    @staticmethod
    def count(user_id=None):
        query = PurchasedPack.query
        if user_id is not None:
            query = query.filter_by(user_id=user_id)
        return query.count()
