from datetime import datetime, timezone
from extensions import db


class Folder(db.Model):
    __tablename__ = "asset_folders"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("asset_products.id"), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)

    product = db.relationship("Product", back_populates="folders")
    files = db.relationship("AssetFile", back_populates="folder", lazy=True)

    __table_args__ = (
        db.Index("idx_asset_folders_product", "product_id"),
    )

    def storage_segments(self):
        """Business unit / product / folder ids used as the on-disk directory layout."""
        return (str(self.product.business_unit_id), str(self.product_id), str(self.id))

    def to_dict(self):
        return {
            "id": self.id,
            "productId": self.product_id,
            "name": self.name,
            "description": self.description,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Folder {self.name}>"
