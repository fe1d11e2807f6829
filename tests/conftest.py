import json
import os
import textwrap

import pytest

from src.tx_module import TxModule
from tests.helpers import write_file

TX_CONFIG = textwrap.dedent("""\
    [main]
    host = https://www.transifex.com

    [o:silverstripe:p:silverstripe-admin:r:master]
    file_filter = lang/<lang>.yml
    source_file = lang/en.yml
    source_lang = en
    type = YML

    [o:silverstripe:p:silverstripe-admin:r:js]
    file_filter = client/lang/src/<lang>.json
    source_file = client/lang/src/en.json
    source_lang = en
    type = KEYVALUEJSON
""")


@pytest.fixture
def module_dir(tmp_path):
    """A module checkout with a Transifex config, yml and json locale files."""
    root = str(tmp_path / 'silverstripe-admin')
    write_file(os.path.join(root, '.tx', 'config'), TX_CONFIG)
    write_file(os.path.join(root, 'composer.json'), json.dumps({"name": "silverstripe/admin"}))
    write_file(os.path.join(root, 'lang', 'en.yml'), textwrap.dedent("""\
        en:
          LeftAndMain:
            SAVE: Save
            DELETE: Delete
            EMPTY: ''
    """))
    write_file(os.path.join(root, 'lang', 'fr.yml'), textwrap.dedent("""\
        fr:
          LeftAndMain:
            SAVE: Enregistrer
            LOCAL_ONLY: Seulement local
    """))
    write_file(os.path.join(root, 'client', 'lang', 'src', 'en.json'), json.dumps({
        "Admin.SAVE": "Save",
        "Admin.CLOSE": "Close"
    }))
    write_file(os.path.join(root, 'client', 'lang', 'src', 'de.json'), json.dumps({
        "Admin.SAVE": "Speichern"
    }))
    return root


@pytest.fixture
def tx_module(module_dir):
    return TxModule.from_path(module_dir)
