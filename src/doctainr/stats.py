"""
Statistics aggregation for the dashboard tab.

Turns the current snapshot collections into the counts the dashboard
cards show (running/stopped containers, images, volumes).

Architecture:
- StatsCollector: aggregates one snapshot into a plain dict
- format_metric_cards: (title, value, hint) rows for rendering
"""

from collections import defaultdict
from typing import Any, Dict, List, Sequence, Tuple

from .model import NONE_TAG, ContainerInfo, ContainerState, ImageInfo, VolumeInfo


class StatsCollector:
    """Aggregates snapshot collections into dashboard statistics."""

    def collect_stats(self, containers: Sequence[ContainerInfo], images: Sequence[ImageInfo],
                      volumes: Sequence[VolumeInfo]) -> Dict[str, Any]:
        return {
            'containers': self._analyze_containers(containers),
            'images': self._analyze_images(images),
            'volumes': self._analyze_volumes(volumes),
        }

    def _analyze_containers(self, containers: Sequence[ContainerInfo]) -> Dict[str, Any]:
        running = sum(1 for c in containers if c.state is ContainerState.RUNNING)
        return {
            'total': len(containers),
            'running': running,
            'stopped': len(containers) - running,
        }

    def _analyze_images(self, images: Sequence[ImageInfo]) -> Dict[str, Any]:
        untagged = sum(1 for i in images if i.repository == NONE_TAG)
        return {
            'total': len(images),
            'tagged': len(images) - untagged,
            'untagged': untagged,
        }

    def _analyze_volumes(self, volumes: Sequence[VolumeInfo]) -> Dict[str, Any]:
        drivers: Dict[str, int] = defaultdict(int)
        for v in volumes:
            drivers[v.driver] += 1
        return {
            'total': len(volumes),
            'drivers': dict(drivers),
        }


def format_metric_cards(stats: Dict[str, Any]) -> List[Tuple[str, str, str]]:
    c = stats['containers']
    i = stats['images']
    v = stats['volumes']
    drivers = ", ".join(f"{name}: {count}" for name, count in sorted(v['drivers'].items()))
    return [
        ("Running containers", str(c['running']), "Across all projects"),
        ("Stopped containers", str(c['stopped']), "Ready to restart"),
        ("Images", str(i['total']), f"{i['tagged']} tagged, {i['untagged']} untagged"),
        ("Volumes", str(v['total']), drivers or "Persistent data"),
    ]
