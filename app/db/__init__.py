# app/db/__init__.py

# Import Base from base_class, making it accessible via app.db.Base
from .base_class import Base

# Import all ORM models so they are registered with SQLAlchemy's metadata
from .models import CategoryOrm
from .models import RentalLocationOrm
from .models import RateTypeOrm
from .models import SeasonDefinitionOrm
from .models import SeasonOrm
from .models import PriceDefinitionOrm
from .models import CategoryRentalLocationRateTypeOrm
from .models import PriceOrm
