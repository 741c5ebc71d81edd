from .user import PyObjectId, User, UserCreate, UserUpdate, Identity, Assignee, utcnow
from .lookup import LookupCategory, LookupEntity
from .ticket import Ticket, TicketCreate, TicketUpdate, TicketView, ChartDataItem
from .menu import MenuItem, MenuNode
from .suggestion import SuggestAssigneeRequest, AssigneeSuggestion
