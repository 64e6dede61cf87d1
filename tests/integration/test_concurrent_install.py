"""
Integration tests for concurrent installs.

Several threads and several processes install the same distribution from a
local HTTP server at once. Exactly one of them may download it; all of them
must end up with the same installation root.
"""

import multiprocessing
import threading

import pytest

from tests.utils import DIST_NAME, distribution_zip
from wrapperkit.core.exceptions import NetworkError
from wrapperkit.core.paths import DistributionSpec, PathResolver
from wrapperkit.wrapper.installer import Installer

DIST_PATH = f"/dists/{DIST_NAME}.zip"


def worker_install(user_home, project_dir, url, result_queue):
    """
    Worker function that installs a distribution in a separate process.

    Args:
        user_home: Wrapper user home shared by all workers
        project_dir: Project directory
        url: Distribution URL
        result_queue: Queue to communicate results
    """
    try:
        installer = Installer(PathResolver(user_home, project_dir))
        result = installer.ensure_installed(DistributionSpec(url))
        result_queue.put(("installed", str(result.install_root), result.downloaded))
    except Exception as e:
        result_queue.put(("error", repr(e), False))


@pytest.fixture
def served_dist(dist_server):
    dist_server.files[DIST_PATH] = distribution_zip()
    dist_server.delay = 0.3
    return dist_server


@pytest.mark.slow
class TestConcurrentInstall:
    """Test that concurrent installers download once."""

    def test_threads_download_once(self, served_dist, resolver):
        """Test concurrent threads share one download."""
        url = served_dist.url(DIST_PATH)
        results = []
        errors = []
        results_lock = threading.Lock()

        def install():
            try:
                result = Installer(resolver).ensure_installed(DistributionSpec(url))
                with results_lock:
                    results.append(result)
            except Exception as e:
                with results_lock:
                    errors.append(e)

        threads = [threading.Thread(target=install) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        assert errors == []
        assert len(results) == 6
        assert served_dist.count(DIST_PATH) == 1
        assert len({result.install_root for result in results}) == 1
        assert sum(result.downloaded for result in results) == 1
        assert sum(not result.was_cached for result in results) == 1

    def test_processes_download_once(self, served_dist, user_home, project_dir):
        """Test concurrent processes share one download."""
        url = served_dist.url(DIST_PATH)
        result_queue = multiprocessing.Queue()

        processes = [
            multiprocessing.Process(
                target=worker_install,
                args=(str(user_home), str(project_dir), url, result_queue),
            )
            for _ in range(4)
        ]
        for process in processes:
            process.start()

        results = [result_queue.get(timeout=60) for _ in processes]

        for process in processes:
            process.join(timeout=10)

        assert [status for status, _, _ in results] == ["installed"] * 4, results
        assert len({root for _, root, _ in results}) == 1
        assert sum(downloaded for _, _, downloaded in results) == 1
        assert served_dist.count(DIST_PATH) == 1

    def test_install_after_failed_download(self, dist_server, resolver):
        """Test a failed download leaves the cache usable for the next attempt."""
        url = dist_server.url(DIST_PATH)
        installer = Installer(resolver)

        with pytest.raises(NetworkError, match="HTTP 404"):
            installer.ensure_installed(DistributionSpec(url))

        dist_server.files[DIST_PATH] = distribution_zip()
        result = installer.ensure_installed(DistributionSpec(url))

        assert result.install_root.name == DIST_NAME
        assert dist_server.count(DIST_PATH) == 2
