'''
this script checks all python scripts in src directory
it runs every script, detects pass/failure based on return code, and report that
under pytest, test_all_scripts fails if any script fails
'''

import os
import sys
import glob
import subprocess

all_fpaths = glob.glob(os.path.join(os.path.dirname(os.path.abspath(__file__)), 'src/*.py'))
all_fpaths.sort()


def run_script(fpath: str):
    completed = subprocess.run(
        [sys.executable, fpath], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    return completed.returncode


def test_all_scripts():
    assert len(all_fpaths) > 0
    failed = [os.path.basename(fpath) for fpath in all_fpaths if run_script(fpath) != 0]
    assert failed == []


if __name__ == '__main__':
    for fpath in all_fpaths:
        retcode = run_script(fpath)
        status = 'PASSED' if retcode == 0 else 'FAILED (%d)' % retcode
        bname = os.path.basename(fpath)
        print('%s: %s' % (bname, status))
