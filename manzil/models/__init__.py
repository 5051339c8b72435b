from .user import User
from .listing import Listing, ListingImage, CATEGORIES
from .reservation import Reservation
from .favorite import Favorite
