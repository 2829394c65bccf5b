"""
Leaderboard Service
===================

Purpose
-------
Ranked-leaderboard semantics on top of an ordered-set store: membership,
scores, ranks, pages, windows around a member, and batch lookups.

Domain
------
- Rank members by score (highest score = rank 1)
- Normalize store ranks to 1-indexed (default) or 0-indexed
- Page through a leaderboard with clamped page numbers and page sizes
- Window a page around a given member
- Look up several members at once, preserving input order

Conventions
-----------
- Every operation exists as `op(...)`, acting on this instance's leaderboard,
  and `op_in(leaderboard_name, ...)`, acting on any named leaderboard. The
  short form always delegates to the `_in` form.
- Absent members are `None` (or omitted from lists), never exceptions.
- Invalid page numbers and page sizes are normalized, never rejected.
- Store errors propagate unchanged; nothing is retried.

Consistency
-----------
Page and window reads fetch (member, score) pairs first, then look each
member's rank up again from the live store. Under concurrent writes the rank
can therefore disagree with the position the member was fetched at; a member
removed between the two reads is dropped from the result.
`score_and_rank_for` is atomic only when the store's `combined_read` is.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

from redis.asyncio import Redis

from leaderboard_engine.core.config import Config
from leaderboard_engine.core.logging.logger import get_logger
from leaderboard_engine.core.redis.service import RedisService
from leaderboard_engine.core.redis.store import RedisOrderedSetStore
from leaderboard_engine.modules.leaderboard.models import LeaderData
from leaderboard_engine.modules.shared.base_service import BaseService

if TYPE_CHECKING:
    from logging import Logger

    from leaderboard_engine.core.store.base import OrderedSetStore, ScoredMember


VERSION = "2.0.2"
DEFAULT_PAGE_SIZE = 25
DEFAULT_REDIS_HOST = "localhost"
DEFAULT_REDIS_PORT = 6379


class Leaderboard(BaseService):
    """
    A named leaderboard over an ordered-set store.

    Public Methods
    --------------
    - rank_member() / score_for() / change_score_for() / check_member()
    - total_members() / total_pages() / total_members_in_score_range()
    - remove_members_in_score_range() / delete_leaderboard()
    - rank_for() / score_and_rank_for()
    - leaders() / around_me() / ranked_in_list()

    Example:
        >>> board = Leaderboard.connect("highscores")
        >>> await board.rank_member("alice", 1200)
        >>> await board.leaders(1)
        [LeaderData(member='alice', score=1200.0, rank=1)]
    """

    VERSION = VERSION
    DEFAULT_PAGE_SIZE = DEFAULT_PAGE_SIZE
    DEFAULT_REDIS_HOST = DEFAULT_REDIS_HOST
    DEFAULT_REDIS_PORT = DEFAULT_REDIS_PORT

    def __init__(
        self,
        leaderboard_name: str,
        store: OrderedSetStore,
        page_size: int = DEFAULT_PAGE_SIZE,
        logger: Optional[Logger] = None,
    ) -> None:
        """
        Args:
            leaderboard_name: Default leaderboard for the short-form operations
            store: Ordered-set backend
            page_size: Default page size; values below 1 reset to DEFAULT_PAGE_SIZE
            logger: Optional logger, defaults to this module's logger
        """
        super().__init__(logger or get_logger(__name__))
        self._leaderboard_name = leaderboard_name
        self._store = store
        self._page_size = self._valid_page_size(page_size)
        self._race_window_logged = False

    @classmethod
    def connect(
        cls,
        leaderboard_name: str,
        host: str = DEFAULT_REDIS_HOST,
        port: int = DEFAULT_REDIS_PORT,
        page_size: int = DEFAULT_PAGE_SIZE,
        **redis_options: Any,
    ) -> "Leaderboard":
        """
        Create a leaderboard with its own Redis connection.

        Extra keyword arguments go to `redis.asyncio.Redis`. Call
        `disconnect()` (or use `async with`) to release the connection.
        """
        redis_options.setdefault("decode_responses", True)
        client = Redis(host=host, port=port, **redis_options)
        return cls(leaderboard_name, RedisOrderedSetStore(client), page_size)

    @classmethod
    def from_config(cls, leaderboard_name: str) -> "Leaderboard":
        """
        Create a leaderboard on the shared RedisService client.

        The page size comes from Config.LEADERBOARD_PAGE_SIZE. Requires
        `await RedisService.initialize()` first.
        """
        return cls(
            leaderboard_name,
            RedisService.create_store(),
            Config.LEADERBOARD_PAGE_SIZE,
        )

    async def __aenter__(self) -> "Leaderboard":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    # ========================================================================
    # CONFIGURATION
    # ========================================================================

    @property
    def leaderboard_name(self) -> str:
        return self._leaderboard_name

    @property
    def store(self) -> OrderedSetStore:
        return self._store

    @property
    def page_size(self) -> int:
        return self._page_size

    @page_size.setter
    def page_size(self, page_size: int) -> None:
        self._page_size = self._valid_page_size(page_size)

    async def disconnect(self) -> None:
        """
        Close the underlying store.

        A leaderboard from `from_config` only releases its store; the shared
        client stays open until `RedisService.shutdown()`.
        """
        await self._store.close()

    # ========================================================================
    # PUBLIC API - Membership & Scores
    # ========================================================================

    async def delete_leaderboard(self) -> int:
        return await self.delete_leaderboard_named(self._leaderboard_name)

    async def delete_leaderboard_named(self, leaderboard_name: str) -> int:
        """
        Delete the named leaderboard.

        Returns:
            1 if the leaderboard existed, 0 otherwise
        """
        self.log_operation("delete_leaderboard_named", leaderboard=leaderboard_name)
        return await self._store.delete_collection(leaderboard_name)

    async def rank_member(self, member: str, score: float) -> int:
        return await self.rank_member_in(self._leaderboard_name, member, score)

    async def rank_member_in(
        self, leaderboard_name: str, member: str, score: float
    ) -> int:
        """
        Rank a member in the named leaderboard, overwriting any previous score.

        Returns:
            1 if the member was added, 0 if an existing score was updated
        """
        self.log_operation(
            "rank_member_in", leaderboard=leaderboard_name, member=member, score=score
        )
        return await self._store.add_or_update(leaderboard_name, member, score)

    async def score_for(self, member: str) -> Optional[float]:
        return await self.score_for_in(self._leaderboard_name, member)

    async def score_for_in(self, leaderboard_name: str, member: str) -> Optional[float]:
        """Score of member, or None if it is not in the leaderboard."""
        self.log_operation("score_for_in", leaderboard=leaderboard_name, member=member)
        return await self._store.score_of(leaderboard_name, member)

    async def change_score_for(self, member: str, delta: float) -> float:
        return await self.change_score_for_in(self._leaderboard_name, member, delta)

    async def change_score_for_in(
        self, leaderboard_name: str, member: str, delta: float
    ) -> float:
        """
        Atomically add delta to a member's score.

        An absent member is created with score == delta.

        Returns:
            The updated score
        """
        self.log_operation(
            "change_score_for_in", leaderboard=leaderboard_name, member=member, delta=delta
        )
        return await self._store.increment(leaderboard_name, member, delta)

    async def check_member(self, member: str) -> bool:
        return await self.check_member_in(self._leaderboard_name, member)

    async def check_member_in(self, leaderboard_name: str, member: str) -> bool:
        self.log_operation("check_member_in", leaderboard=leaderboard_name, member=member)
        return await self._store.score_of(leaderboard_name, member) is not None

    async def total_members(self) -> int:
        return await self.total_members_in(self._leaderboard_name)

    async def total_members_in(self, leaderboard_name: str) -> int:
        self.log_operation("total_members_in", leaderboard=leaderboard_name)
        return await self._store.cardinality(leaderboard_name)

    async def total_pages(self, page_size: Optional[int] = None) -> int:
        return await self.total_pages_in(self._leaderboard_name, page_size)

    async def total_pages_in(
        self, leaderboard_name: str, page_size: Optional[int] = None
    ) -> int:
        """
        Number of pages in the named leaderboard.

        A partially filled last page counts as a page; an empty leaderboard
        has 0 pages.

        Args:
            leaderboard_name: Leaderboard
            page_size: None for this instance's page size; below 1 for DEFAULT_PAGE_SIZE
        """
        page_size = self._resolve_page_size(page_size)
        self.log_operation("total_pages_in", leaderboard=leaderboard_name, page_size=page_size)
        total = await self._store.cardinality(leaderboard_name)
        return int(math.ceil(float(total) / float(page_size)))

    async def total_members_in_score_range(
        self, min_score: float, max_score: float
    ) -> int:
        return await self.total_members_in_score_range_in(
            self._leaderboard_name, min_score, max_score
        )

    async def total_members_in_score_range_in(
        self, leaderboard_name: str, min_score: float, max_score: float
    ) -> int:
        """Count members with min_score <= score <= max_score."""
        self.log_operation(
            "total_members_in_score_range_in",
            leaderboard=leaderboard_name,
            min_score=min_score,
            max_score=max_score,
        )
        return await self._store.count_in_score_range(
            leaderboard_name, min_score, max_score
        )

    async def remove_members_in_score_range(
        self, min_score: float, max_score: float
    ) -> int:
        return await self.remove_members_in_score_range_in(
            self._leaderboard_name, min_score, max_score
        )

    async def remove_members_in_score_range_in(
        self, leaderboard_name: str, min_score: float, max_score: float
    ) -> int:
        """
        Remove members with min_score <= score <= max_score.

        Returns:
            Number of members removed
        """
        self.log_operation(
            "remove_members_in_score_range_in",
            leaderboard=leaderboard_name,
            min_score=min_score,
            max_score=max_score,
        )
        return await self._store.remove_range_by_score(
            leaderboard_name, min_score, max_score
        )

    # ========================================================================
    # PUBLIC API - Ranks
    # ========================================================================

    async def rank_for(
        self, member: str, use_zero_index_for_rank: bool = False
    ) -> Optional[int]:
        return await self.rank_for_in(
            self._leaderboard_name, member, use_zero_index_for_rank
        )

    async def rank_for_in(
        self,
        leaderboard_name: str,
        member: str,
        use_zero_index_for_rank: bool = False,
    ) -> Optional[int]:
        """
        Rank of member, highest score first.

        Returns:
            1-indexed rank (0-indexed if requested), or None if absent
        """
        self.log_operation("rank_for_in", leaderboard=leaderboard_name, member=member)
        store_rank = await self._store.reverse_rank_of(leaderboard_name, member)
        return self._normalize_rank(store_rank, use_zero_index_for_rank)

    async def score_and_rank_for(
        self, member: str, use_zero_index_for_rank: bool = False
    ) -> Optional[LeaderData]:
        return await self.score_and_rank_for_in(
            self._leaderboard_name, member, use_zero_index_for_rank
        )

    async def score_and_rank_for_in(
        self,
        leaderboard_name: str,
        member: str,
        use_zero_index_for_rank: bool = False,
    ) -> Optional[LeaderData]:
        """
        Score and rank of member from a single combined store read.

        Returns:
            LeaderData, or None if the member is not in the leaderboard
        """
        if not self._store.atomic_combined_read and not self._race_window_logged:
            self._race_window_logged = True
            self.log.debug(
                "Store reads score and rank separately; a concurrent write can "
                "pair a score with a stale rank",
                extra={"store": type(self._store).__name__},
            )

        self.log_operation(
            "score_and_rank_for_in", leaderboard=leaderboard_name, member=member
        )
        score, store_rank = await self._store.combined_read(leaderboard_name, member)
        if score is None or store_rank is None:
            return None

        return LeaderData(
            member,
            score,
            self._normalize_rank(store_rank, use_zero_index_for_rank),
        )

    # ========================================================================
    # PUBLIC API - Pages & Windows
    # ========================================================================

    async def leaders(
        self,
        current_page: int,
        use_zero_index_for_rank: bool = False,
        page_size: Optional[int] = None,
    ) -> List[LeaderData]:
        return await self.leaders_in(
            self._leaderboard_name, current_page, use_zero_index_for_rank, page_size
        )

    async def leaders_in(
        self,
        leaderboard_name: str,
        current_page: int,
        use_zero_index_for_rank: bool = False,
        page_size: Optional[int] = None,
    ) -> List[LeaderData]:
        """
        One page of leaders, highest score first.

        Pages start at 1. A page below 1 reads page 1; a page past the end
        reads the last page. An empty leaderboard yields an empty list.

        Args:
            leaderboard_name: Leaderboard
            current_page: Page number
            use_zero_index_for_rank: Report 0-indexed ranks
            page_size: None for this instance's page size; below 1 for DEFAULT_PAGE_SIZE
        """
        if current_page < 1:
            current_page = 1

        page_size = self._resolve_page_size(page_size)

        total_pages = await self.total_pages_in(leaderboard_name, page_size)
        if current_page > total_pages:
            current_page = total_pages

        starting_offset = (current_page - 1) * page_size
        if starting_offset < 0:
            starting_offset = 0
        ending_offset = (starting_offset + page_size) - 1

        self.log_operation(
            "leaders_in",
            leaderboard=leaderboard_name,
            page=current_page,
            page_size=page_size,
            starting_offset=starting_offset,
            ending_offset=ending_offset,
        )

        raw_leader_data = await self._store.reverse_range_with_scores(
            leaderboard_name, starting_offset, ending_offset
        )
        return await self._massage_leader_data(
            leaderboard_name, raw_leader_data, use_zero_index_for_rank
        )

    async def around_me(
        self,
        member: str,
        use_zero_index_for_rank: bool = False,
        page_size: Optional[int] = None,
    ) -> List[LeaderData]:
        return await self.around_me_in(
            self._leaderboard_name, member, use_zero_index_for_rank, page_size
        )

    async def around_me_in(
        self,
        leaderboard_name: str,
        member: str,
        use_zero_index_for_rank: bool = False,
        page_size: Optional[int] = None,
    ) -> List[LeaderData]:
        """
        A page-sized window of leaders centred on member.

        The window starts page_size // 2 places above the member. Near the
        top it is cut short rather than shifted down, so fewer than page_size
        entries may come back. An absent member yields an empty list.
        """
        reverse_rank_for_member = await self._store.reverse_rank_of(
            leaderboard_name, member
        )
        if reverse_rank_for_member is None:
            return []

        page_size = self._resolve_page_size(page_size)

        starting_offset = reverse_rank_for_member - (page_size // 2)
        if starting_offset < 0:
            starting_offset = 0
        ending_offset = (starting_offset + page_size) - 1

        self.log_operation(
            "around_me_in",
            leaderboard=leaderboard_name,
            member=member,
            page_size=page_size,
            starting_offset=starting_offset,
            ending_offset=ending_offset,
        )

        raw_leader_data = await self._store.reverse_range_with_scores(
            leaderboard_name, starting_offset, ending_offset
        )
        return await self._massage_leader_data(
            leaderboard_name, raw_leader_data, use_zero_index_for_rank
        )

    async def ranked_in_list(
        self, members: Sequence[str], use_zero_index_for_rank: bool = False
    ) -> List[LeaderData]:
        return await self.ranked_in_list_in(
            self._leaderboard_name, members, use_zero_index_for_rank
        )

    async def ranked_in_list_in(
        self,
        leaderboard_name: str,
        members: Sequence[str],
        use_zero_index_for_rank: bool = False,
    ) -> List[LeaderData]:
        """
        LeaderData for each listed member that is in the leaderboard.

        Output follows input order, not score order. Absent members are
        left out without a placeholder.

        Raises:
            TypeError: if members is a single string rather than a sequence of them
        """
        if isinstance(members, (str, bytes)):
            raise TypeError("members must be a sequence of member names, not a single string")
        members = list(members)
        self.log_operation(
            "ranked_in_list_in", leaderboard=leaderboard_name, member_count=len(members)
        )

        lookups = await self._store.combined_read_many(leaderboard_name, members)

        leader_data: List[LeaderData] = []
        for member, (score, store_rank) in zip(members, lookups):
            if score is None or store_rank is None:
                continue
            leader_data.append(
                LeaderData(
                    member,
                    score,
                    self._normalize_rank(store_rank, use_zero_index_for_rank),
                )
            )

        return leader_data

    # ========================================================================
    # PRIVATE HELPERS
    # ========================================================================

    @staticmethod
    def _valid_page_size(page_size: int) -> int:
        if page_size < 1:
            return DEFAULT_PAGE_SIZE
        return page_size

    def _resolve_page_size(self, page_size: Optional[int]) -> int:
        if page_size is None:
            return self._page_size
        return self._valid_page_size(page_size)

    @staticmethod
    def _normalize_rank(
        store_rank: Optional[int], use_zero_index_for_rank: bool
    ) -> Optional[int]:
        if store_rank is None:
            return None
        if use_zero_index_for_rank:
            return store_rank
        return store_rank + 1

    async def _massage_leader_data(
        self,
        leaderboard_name: str,
        member_data: List[ScoredMember],
        use_zero_index_for_rank: bool,
    ) -> List[LeaderData]:
        """
        Turn (member, score) pairs into LeaderData, re-reading each rank.

        Members whose rank lookup comes back empty were removed after the
        range read and are skipped.
        """
        leader_data: List[LeaderData] = []

        for member, score in member_data:
            rank = await self.rank_for_in(
                leaderboard_name, member, use_zero_index_for_rank
            )
            if rank is None:
                self.log.debug(
                    "Member removed between range and rank reads, skipping",
                    extra={"leaderboard": leaderboard_name, "member": member},
                )
                continue
            leader_data.append(LeaderData(member, score, rank))

        return leader_data
