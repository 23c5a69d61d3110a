from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from ..errors import InputValidationError, InvariantViolation
from ..schemas import AdvancementOutcome, Bases, DraftPlay, OutDetail, RunnerAssignment
from .disambiguation import FIELDERS
from .outcome_classifier import BATTING_RESULTS


# Resolution order: bases first, batter ("home" as origin) last
ORIGIN_ORDER = ("1", "2", "3", "home")
_ORIGIN_RANK = {"home": 0, "1": 1, "2": 2, "3": 3}
_TARGET_RANK = {"1": 1, "2": 2, "3": 3, "home": 4}
_THROWN_TO_FIRST = ("groundout", "bunt_out", "sacrifice_bunt")
_CAUGHT = ("flyout", "lineout", "sacrifice_fly")


def _label(origin: str) -> str:
    return "batter" if origin == "home" else f"runner on {origin}"


class RunnerAdvancementResolver:
    """Resolve where the batter and every baserunner end up.

    - Builds automatic destinations implied by the result (home runs, walks
      and hit-by-pitch force chains, batter outs with their putout credit).
    - Everything else is assigned by the scorer, base 1 -> 2 -> 3 -> batter.
    - `resolve` checks occupancy, accounting and the out count and returns the
      after-state; it never corrects the scorer's input.
    """

    @staticmethod
    def runners(draft: DraftPlay) -> Dict[str, str]:
        out = dict(draft.runners_before.occupied())
        out["home"] = draft.batter_id
        return out

    @staticmethod
    def batter_out_detail(draft: DraftPlay) -> Optional[OutDetail]:
        result = draft.result
        a = draft.answers
        if result in ("strikeout_swinging", "strikeout_looking"):
            return OutDetail(runner_id=draft.batter_id, from_base="home", putting_out_position="2")
        if result in _CAUGHT and a.fielding_position:
            return OutDetail(runner_id=draft.batter_id, from_base="home", putting_out_position=a.fielding_position)
        if result in _THROWN_TO_FIRST and a.fielding_position:
            if a.fielding_position == "3":
                if a.first_base_touched is False and a.putout_position:
                    return OutDetail(
                        runner_id=draft.batter_id,
                        from_base="home",
                        throwing_position="3",
                        putting_out_position=a.putout_position,
                    )
                # Unassisted
                return OutDetail(runner_id=draft.batter_id, from_base="home", putting_out_position="3")
            return OutDetail(
                runner_id=draft.batter_id,
                from_base="home",
                throwing_position=a.fielding_position,
                putting_out_position="3",
            )
        return None

    def automatic(self, draft: DraftPlay) -> Dict[str, RunnerAssignment]:
        if draft.result is None:
            return {}
        d = BATTING_RESULTS[draft.result]
        occupied = draft.runners_before.occupied()
        auto: Dict[str, RunnerAssignment] = {}

        if d.batter_auto == "home":
            for base, rid in occupied.items():
                auto[base] = RunnerAssignment(runner_id=rid, from_base=base, target="home", automatic=True)
            auto["home"] = RunnerAssignment(runner_id=draft.batter_id, from_base="home", target="home", automatic=True)
        elif d.batter_auto == "1":
            # Force chain: a runner moves up only if every base behind it is occupied
            forced = True
            for base, nxt in (("1", "2"), ("2", "3"), ("3", "home")):
                forced = forced and base in occupied
                if forced:
                    auto[base] = RunnerAssignment(runner_id=occupied[base], from_base=base, target=nxt, automatic=True)
                elif base in occupied:
                    # Unforced runners hold unless the scorer moves them
                    auto[base] = RunnerAssignment(runner_id=occupied[base], from_base=base, target=base)
            auto["home"] = RunnerAssignment(runner_id=draft.batter_id, from_base="home", target="1", automatic=True)
        elif d.batter_auto == "out":
            detail = self.batter_out_detail(draft)
            if detail is not None:
                auto["home"] = RunnerAssignment(
                    runner_id=draft.batter_id, from_base="home", target="out", out_detail=detail, automatic=True
                )
        return auto

    def open(self, draft: DraftPlay) -> DraftPlay:
        """Seed the draft with automatic destinations; scorer entries are dropped."""
        return draft.model_copy(update={"assignments": self.automatic(draft)})

    def pending(self, draft: DraftPlay) -> List[str]:
        runners = self.runners(draft)
        return [o for o in ORIGIN_ORDER if o in runners and o not in draft.assignments]

    def suggested_target(self, draft: DraftPlay, origin: str) -> Optional[str]:
        if origin == "home":
            d = BATTING_RESULTS.get(draft.result) if draft.result else None
            return d.batter_suggest if d else None
        return origin

    def eligible_runners(self, draft: DraftPlay, target: str) -> List[Tuple[str, str]]:
        """Unassigned runners that could be the one arriving at `target`."""
        if target not in _TARGET_RANK and target != "out":
            raise InputValidationError(f"unknown runner target: {target}")
        runners = self.runners(draft)
        out: List[Tuple[str, str]] = []
        for origin in ORIGIN_ORDER:
            if origin not in runners or origin in draft.assignments:
                continue
            if target == "out" or _ORIGIN_RANK[origin] < _TARGET_RANK[target]:
                out.append((origin, runners[origin]))
        return out

    def assign(
        self,
        draft: DraftPlay,
        origin: str,
        target: str,
        putting_out_position: Optional[str] = None,
        throwing_position: Optional[str] = None,
    ) -> DraftPlay:
        runners = self.runners(draft)
        if origin not in runners:
            raise InputValidationError(f"no runner on {origin}")
        current = draft.assignments.get(origin)
        if current is not None and current.automatic:
            raise InputValidationError(f"{_label(origin)} moves automatically on a {draft.result}")
        if target not in _TARGET_RANK and target != "out":
            raise InputValidationError(f"unknown runner target: {target}")

        detail = None
        if target == "out":
            if not putting_out_position:
                raise InputValidationError(f"{_label(origin)} is out: the putout fielder is required")
            for pos in (putting_out_position, throwing_position):
                if pos is not None and pos not in FIELDERS:
                    raise InputValidationError(f"unknown fielding position: {pos}")
            detail = OutDetail(
                runner_id=runners[origin],
                from_base=origin,
                throwing_position=throwing_position,
                putting_out_position=putting_out_position,
            )
        else:
            if origin != "home" and _TARGET_RANK[target] < _ORIGIN_RANK[origin]:
                raise InputValidationError(f"{_label(origin)} cannot move back to {target}")
            if target != "home":
                for other, a in draft.assignments.items():
                    if other != origin and a.target == target:
                        raise InputValidationError(f"base {target} already holds {a.runner_id}")

        assignment = RunnerAssignment(runner_id=runners[origin], from_base=origin, target=target, out_detail=detail)
        assignments = dict(draft.assignments)
        assignments[origin] = assignment
        return draft.model_copy(update={"assignments": assignments})

    def unassign(self, draft: DraftPlay, origin: str) -> DraftPlay:
        a = draft.assignments.get(origin)
        if a is None:
            return draft
        if a.automatic:
            raise InputValidationError(f"{_label(origin)} moves automatically on a {draft.result}")
        assignments = {k: v for k, v in draft.assignments.items() if k != origin}
        return draft.model_copy(update={"assignments": assignments})

    @staticmethod
    def _relay(draft: DraftPlay, outs: List[OutDetail]) -> List[OutDetail]:
        """On a force then throw to first, the batter is retired by the relay.

        The automatic batter out assumes the fielder threw to first. When a
        runner was forced first, the throw to first comes from the fielder who
        took that force (6-4-3, not 6-3).
        """
        home = draft.assignments.get("home")
        if draft.result not in _THROWN_TO_FIRST or home is None or not home.automatic:
            return outs
        runner_outs = [d for d in outs if d.from_base != "home"]
        if not runner_outs:
            return outs
        last_force = min(runner_outs, key=lambda d: _ORIGIN_RANK[d.from_base])
        relayed = []
        for d in outs:
            if (
                d.from_base == "home"
                and d.throwing_position == draft.answers.fielding_position
                and last_force.putting_out_position not in ("3", d.throwing_position)
            ):
                d = d.model_copy(update={"throwing_position": last_force.putting_out_position})
            relayed.append(d)
        return relayed

    def resolve(self, draft: DraftPlay) -> AdvancementOutcome:
        pending = self.pending(draft)
        if pending:
            raise InputValidationError(f"{_label(pending[0])} has no destination")

        ordered = [draft.assignments[o] for o in ORIGIN_ORDER if o in draft.assignments]
        after: Dict[str, str] = {}
        scored: List[str] = []
        outs: List[OutDetail] = []
        for a in ordered:
            if a.target == "out":
                if a.out_detail is None:
                    raise InvariantViolation(f"{_label(a.from_base)} is out without a putout")
                outs.append(a.out_detail)
            elif a.target == "home":
                scored.append(a.runner_id)
            else:
                if a.target in after:
                    raise InvariantViolation("no base may hold two runners")
                after[a.target] = a.runner_id

        # A trailing runner may not finish at or beyond the runner ahead
        safe = [a for a in ordered if a.target != "out"]
        for trail in safe:
            for lead in safe:
                if _ORIGIN_RANK[trail.from_base] < _ORIGIN_RANK[lead.from_base]:
                    if trail.target == "home" and lead.target == "home":
                        continue
                    if _TARGET_RANK[trail.target] >= _TARGET_RANK[lead.target]:
                        raise InvariantViolation("a runner cannot pass the runner ahead")

        before = draft.runners_before.count()
        if len(scored) + len(outs) + len(after) != before + 1:
            raise InvariantViolation("every runner and the batter must be accounted for")

        outs_after = draft.outs_before + len(outs)
        if outs_after > 3:
            raise InvariantViolation("a half-inning cannot exceed three outs")
        confirmed = draft.answers.outs_after
        if confirmed is not None and confirmed != outs_after:
            raise InvariantViolation(f"outs after the play were confirmed as {confirmed} but runners show {outs_after}")

        return AdvancementOutcome(
            runners_after=Bases.from_mapping(after),
            scored_runner_ids=scored,
            out_details=self._relay(draft, outs),
            outs_after=outs_after,
        )
