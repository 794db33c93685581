"""Data models for rows, Basecamp payloads and persisted state."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


@dataclass
class RichText:
    """A free-text cell with its optional hyperlink and strikethrough flag."""
    value: str = ''
    link: Optional[str] = None
    strikethrough: bool = False


@dataclass
class Row:
    """One scheduled event read from the Onestop."""
    start_time: datetime
    end_time: datetime
    what: RichText
    where: RichText = field(default_factory=RichText)
    in_charge: RichText = field(default_factory=RichText)
    helpers: RichText = field(default_factory=RichText)
    food_lead: RichText = field(default_factory=RichText)
    childcare: RichText = field(default_factory=RichText)
    notes: RichText = field(default_factory=RichText)
    who: str = ''
    num_attendees: Optional[int] = None
    row_id: Optional[str] = None
    source_ref: Optional[str] = None


@dataclass
class TodoRequest:
    """Full-replacement payload for a Basecamp todo."""
    content: str
    description: str
    assignee_ids: List[str]
    completion_subscriber_ids: List[str]
    notify: bool
    due_on: str
    
    def to_payload(self) -> dict:
        return {
            'content': self.content,
            'description': self.description,
            'assignee_ids': self.assignee_ids,
            'completion_subscriber_ids': self.completion_subscriber_ids,
            'notify': self.notify,
            'due_on': self.due_on
        }


@dataclass
class BasecampTodo:
    """Reference to a todo that exists in Basecamp."""
    id: str
    url: Optional[str] = None


@dataclass
class ScheduleEntryRequest:
    """Full-replacement payload for a Basecamp schedule entry."""
    summary: str
    starts_at: str
    ends_at: str
    description: str
    participant_ids: List[str]
    all_day: bool = False
    notify: bool = False
    
    def to_payload(self) -> dict:
        return {
            'summary': self.summary,
            'starts_at': self.starts_at,
            'ends_at': self.ends_at,
            'description': self.description,
            'participant_ids': self.participant_ids,
            'all_day': self.all_day,
            'notify': self.notify
        }


@dataclass
class ScheduleEntry:
    """Reference to a schedule entry that exists in Basecamp."""
    id: str
    url: Optional[str] = None


RoleRequestMap = Dict[str, TodoRequest]
RoleTodoMap = Dict[str, BasecampTodo]
RoleTodoIdMap = Dict[str, str]
GroupsMap = Dict[str, List[str]]
AliasMap = Dict[str, List[str]]


@dataclass
class RowBasecampMapping:
    """Persisted sync state for a single row id."""
    content_hash: str
    role_todo_id_map: RoleTodoIdMap
    row_date: str
    schedule_entry_id: Optional[str] = None
    role_todo_url_map: Dict[str, str] = field(default_factory=dict)
    
    @property
    def role_todo_map(self) -> RoleTodoMap:
        """Saved todos, with the URLs that schedule entries link to."""
        return {
            role: BasecampTodo(id=todo_id, url=self.role_todo_url_map.get(role))
            for role, todo_id in self.role_todo_id_map.items()
        }
    
    @classmethod
    def from_role_todo_map(
        cls,
        content_hash: str,
        role_todo_map: RoleTodoMap,
        row_date: str,
        schedule_entry_id: Optional[str] = None
    ) -> 'RowBasecampMapping':
        return cls(
            content_hash=content_hash,
            role_todo_id_map={role: todo.id for role, todo in role_todo_map.items()},
            row_date=row_date,
            schedule_entry_id=schedule_entry_id,
            role_todo_url_map={role: todo.url for role, todo in role_todo_map.items() if todo.url}
        )
    
    def to_dict(self) -> dict:
        item = {
            'content_hash': self.content_hash,
            'role_todo_id_map': dict(self.role_todo_id_map),
            'role_todo_url_map': dict(self.role_todo_url_map),
            'row_date': self.row_date
        }
        if self.schedule_entry_id:
            item['schedule_entry_id'] = self.schedule_entry_id
        return item
    
    @classmethod
    def from_dict(cls, data: dict) -> 'RowBasecampMapping':
        return cls(
            content_hash=data['content_hash'],
            role_todo_id_map={
                role: str(todo_id)
                for role, todo_id in data.get('role_todo_id_map', {}).items()
            },
            row_date=data['row_date'],
            schedule_entry_id=data.get('schedule_entry_id'),
            role_todo_url_map=dict(data.get('role_todo_url_map') or {})
        )


@dataclass
class Group:
    """A named list of members."""
    name: str
    members: List[str]
    aliases: List[str] = field(default_factory=list)


@dataclass
class Supergroup:
    """A group whose membership is the union of other groups."""
    name: str
    subgroups: List[str]
    additional_members: List[str] = field(default_factory=list)
    aliases: List[str] = field(default_factory=list)


@dataclass
class Member:
    """A person, their attributes used by helper filters, and their alternate names."""
    name: str
    alternate_names: List[str] = field(default_factory=list)
    gender: str = ''
    married: bool = False
    parent: bool = False
    member_class: str = ''
    
    def to_dict(self) -> dict:
        return {
            'gender': self.gender,
            'married': self.married,
            'parent': self.parent,
            'class': self.member_class
        }


@dataclass
class SyncResult:
    """Result of a reconciliation pass."""
    created: int = 0
    updated: int = 0
    repaired: int = 0
    unchanged: int = 0
    deleted: int = 0
    failed: int = 0
    assigned_row_ids: Dict[str, str] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
