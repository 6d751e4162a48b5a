from datetime import datetime, timezone
from extensions import db


class Product(db.Model):
    __tablename__ = "asset_products"

    id = db.Column(db.Integer, primary_key=True)
    business_unit_id = db.Column(db.Integer, db.ForeignKey("asset_business_units.id"), nullable=False)
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

    business_unit = db.relationship("BusinessUnit", back_populates="products")
    folders = db.relationship("Folder", back_populates="product", lazy=True)

    __table_args__ = (
        db.Index("idx_asset_products_business_unit", "business_unit_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "businessUnitId": self.business_unit_id,
            "name": self.name,
            "description": self.description,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Product {self.name}>"
