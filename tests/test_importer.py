"""Tests for the end-to-end import run."""

import errno
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from photo_importer.config import Config
from photo_importer.errors import NoVolumeFound, UnexpectedScanError, VolumeSelectionFailed
from photo_importer.importer import PhotoImporter
from photo_importer.transfer import TransferStatus
from photo_importer.volumes import FirstVolumeSelector, LabelVolumeSelector, Volume

MAY_1 = datetime(2023, 5, 1, 9, 0, tzinfo=timezone.utc)
MAY_2 = datetime(2023, 5, 2, 9, 0, tzinfo=timezone.utc)
DAY_1 = 'SD Card Import 01-May-2023'
DAY_2 = 'SD Card Import 02-May-2023'


def only(volume):
    return lambda config: [volume]


def library_files(library_root):
    return sorted(str(p.relative_to(library_root)) for p in library_root.rglob('*') if p.is_file())


class TestEndToEnd:

    def test_new_images_imported_existing_skipped(self, sample_config, card_root, library_root, create_image):
        photo_dir = card_root / 'DCIM' / '100PHOTO'
        img1 = create_image(photo_dir / 'IMG1.JPG', b'one', MAY_1)
        img2 = create_image(photo_dir / 'IMG2.jpg', b'two', MAY_1)
        create_image(library_root / '2022' / 'img2.JPG', b'older copy', MAY_1)

        importer = PhotoImporter(sample_config, candidate_finder=only(Volume(card_root)))
        stats = importer.run()

        assert (library_root / DAY_1 / 'IMG1.JPG').read_bytes() == b'one'
        assert not (library_root / DAY_1 / 'IMG2.jpg').exists()
        assert not img1.exists()
        assert img2.exists()
        assert stats.images_found == 2
        assert stats.library_images == 1
        assert stats.new_images == 1
        assert stats.folders_created == 1
        assert stats.moved == 1
        assert stats.success

    def test_files_split_by_capture_day(self, sample_config, card_root, library_root, create_image):
        create_image(card_root / 'DCIM' / '100PHOTO' / 'a.jpg', created=MAY_1)
        create_image(card_root / 'DCIM' / '100PHOTO' / 'b.png', created=MAY_2)
        create_image(card_root / 'DCIM' / '101PHOTO' / 'c.jpeg', created=MAY_2)

        stats = PhotoImporter(sample_config, candidate_finder=only(Volume(card_root))).run()

        assert library_files(library_root) == [
            f'{DAY_1}/a.jpg',
            f'{DAY_2}/b.png',
            f'{DAY_2}/c.jpeg',
        ]
        assert stats.groups == 2
        assert stats.folders_created == 2

    def test_days_processed_oldest_first(self, sample_config, card_root, library_root, create_image):
        # '02-Apr-2023' sorts before '01-May-2023' as text
        create_image(card_root / 'DCIM' / 'may.jpg', created=MAY_1)
        create_image(card_root / 'DCIM' / 'april.jpg', created=datetime(2023, 4, 2, 9, 0, tzinfo=timezone.utc))
        create_image(card_root / 'DCIM' / 'june.jpg', created=datetime(2023, 6, 30, 9, 0, tzinfo=timezone.utc))

        stats = PhotoImporter(sample_config, candidate_finder=only(Volume(card_root))).run()

        assert [outcome.file.name for outcome in stats.outcomes] == ['april.jpg', 'may.jpg', 'june.jpg']

    def test_hidden_files_never_imported(self, sample_config, card_root, library_root, create_image):
        create_image(card_root / 'DCIM' / '100PHOTO' / 'a.jpg')
        create_image(card_root / 'DCIM' / '100PHOTO' / '._a.jpg')
        create_image(card_root / 'DCIM' / '.Trashes' / 'b.jpg')

        PhotoImporter(sample_config, candidate_finder=only(Volume(card_root))).run()

        assert library_files(library_root) == [f'{DAY_1}/a.jpg']

    def test_hidden_library_files_do_not_block_import(self, sample_config, card_root, library_root, create_image):
        create_image(card_root / 'DCIM' / 'a.jpg')
        create_image(library_root / '.cache' / 'a.jpg')

        stats = PhotoImporter(sample_config, candidate_finder=only(Volume(card_root))).run()

        assert stats.library_images == 0
        assert (library_root / DAY_1 / 'a.jpg').exists()

    def test_second_run_imports_nothing(self, sample_config, card_root, library_root, create_image):
        create_image(card_root / 'DCIM' / 'a.jpg')
        importer = PhotoImporter(sample_config, candidate_finder=only(Volume(card_root)))

        with patch('photo_importer.transfer.os.rename',
                   side_effect=OSError(errno.EXDEV, 'Invalid cross-device link')):
            first = importer.run()
        second = importer.run()

        assert first.copied == 1
        assert second.new_images == 0
        assert second.folders_created == 0

    def test_missing_library_root_is_created(self, write_config, tmp_path, card_root, create_image):
        library = tmp_path / 'new' / 'Library'
        config = Config(str(write_config({'photo_import.library_root': str(library)})))
        create_image(card_root / 'DCIM' / 'a.jpg')

        stats = PhotoImporter(config, candidate_finder=only(Volume(card_root))).run()

        assert (library / DAY_1 / 'a.jpg').exists()
        assert stats.library_images == 0


class TestPartialFailures:

    def test_folder_failure_skips_only_that_group(self, sample_config, card_root, library_root, create_image):
        may_1 = create_image(card_root / 'DCIM' / 'a.jpg', created=MAY_1)
        may_2 = create_image(card_root / 'DCIM' / 'b.jpg', created=MAY_2)
        (library_root / DAY_1).write_bytes(b'blocks the folder')

        stats = PhotoImporter(sample_config, candidate_finder=only(Volume(card_root))).run()

        assert may_1.exists()
        assert (library_root / DAY_2 / 'b.jpg').exists()
        assert not may_2.exists()
        assert stats.skipped_groups == 1
        assert stats.failed == 1
        assert stats.moved == 1
        assert not stats.success
        failed = [o for o in stats.outcomes if o.status is TransferStatus.FAILED]
        assert [o.file.path for o in failed] == [may_1]

    def test_copy_fallback_keeps_original(self, sample_config, card_root, library_root, create_image):
        source = create_image(card_root / 'DCIM' / 'a.jpg', b'pixels')

        with patch('photo_importer.transfer.os.rename', side_effect=PermissionError('in use')):
            stats = PhotoImporter(sample_config, candidate_finder=only(Volume(card_root))).run()

        assert stats.copied == 1
        assert source.read_bytes() == b'pixels'
        assert (library_root / DAY_1 / 'a.jpg').read_bytes() == b'pixels'

    def test_per_file_failure_does_not_stop_siblings(self, sample_config, card_root, library_root, create_image):
        create_image(card_root / 'DCIM' / 'a.jpg')
        create_image(card_root / 'DCIM' / 'b.jpg')
        create_image(card_root / 'DCIM' / 'c.jpg')
        (library_root / DAY_1).mkdir()
        (library_root / DAY_1 / 'b.jpg').mkdir()  # not an image file, so not matched

        stats = PhotoImporter(sample_config, candidate_finder=only(Volume(card_root))).run()

        assert stats.moved == 2
        assert stats.failed == 1
        assert len(stats.errors) == 1
        assert 'b.jpg' in stats.errors[0]


class TestFatalErrors:

    def test_no_volume_aborts_without_mutation(self, write_config, tmp_path, card_root, create_image):
        library = tmp_path / 'untouched'
        config = Config(str(write_config({'photo_import.library_root': str(library)})))
        source = create_image(card_root / 'DCIM' / 'a.jpg')

        with pytest.raises(NoVolumeFound):
            PhotoImporter(config, candidate_finder=lambda config: []).run()

        assert not library.exists()
        assert source.exists()

    def test_selection_failure_aborts(self, sample_config, tmp_path):
        candidates = [Volume(tmp_path / 'Volumes' / 'A'), Volume(tmp_path / 'Volumes' / 'B')]
        importer = PhotoImporter(sample_config, selector=LabelVolumeSelector('C'),
                                 candidate_finder=lambda config: candidates)

        with pytest.raises(VolumeSelectionFailed):
            importer.run()

    def test_missing_dcim_aborts(self, sample_config, tmp_path, library_root):
        card = tmp_path / 'Volumes' / 'BLANK'
        card.mkdir(parents=True)

        with pytest.raises(UnexpectedScanError):
            PhotoImporter(sample_config, candidate_finder=only(Volume(card))).run()

        assert list(library_root.iterdir()) == []

    def test_library_scan_error_aborts_before_transfers(self, sample_config, card_root, library_root,
                                                        create_image):
        source = create_image(card_root / 'DCIM' / 'a.jpg')
        importer = PhotoImporter(sample_config, candidate_finder=only(Volume(card_root)))
        real_scan = importer.scanner.scan

        def scan(root):
            if root == importer.library_root:
                raise UnexpectedScanError(f"Failed to scan {root}: boom")
            return real_scan(root)

        with patch.object(importer.scanner, 'scan', side_effect=scan):
            with pytest.raises(UnexpectedScanError):
                importer.run()

        assert source.exists()
        assert list(library_root.iterdir()) == []


class TestVolumeResolution:

    def test_multiple_candidates_use_selector(self, sample_config, tmp_path, create_image):
        first = tmp_path / 'Volumes' / 'A'
        second = tmp_path / 'Volumes' / 'B'
        create_image(first / 'DCIM' / 'from_a.jpg')
        create_image(second / 'DCIM' / 'from_b.jpg')
        candidates = [Volume(first), Volume(second)]

        stats = PhotoImporter(sample_config, selector=LabelVolumeSelector('B'),
                              candidate_finder=lambda config: candidates).run()

        assert stats.source_root == str(second / 'DCIM')
        assert stats.moved == 1

    def test_explicit_volume_root_skips_discovery(self, sample_config, card_root, create_image):
        create_image(card_root / 'DCIM' / 'a.jpg')

        with patch('photo_importer.volumes.find_candidate_volumes') as finder:
            stats = PhotoImporter(sample_config).run(volume_root=card_root)

        finder.assert_not_called()
        assert stats.moved == 1

    def test_default_discovery_used(self, sample_config, card_root, create_image):
        create_image(card_root / 'DCIM' / 'a.jpg')

        with patch('photo_importer.volumes.find_candidate_volumes',
                   return_value=[Volume(card_root)]) as finder:
            stats = PhotoImporter(sample_config, selector=FirstVolumeSelector()).run()

        finder.assert_called_once_with(sample_config)
        assert stats.moved == 1


class TestDryRun:

    def test_dry_run_changes_nothing(self, sample_config, card_root, library_root, create_image):
        source = create_image(card_root / 'DCIM' / 'a.jpg', created=MAY_1)
        create_image(card_root / 'DCIM' / 'b.jpg', created=MAY_2)

        stats = PhotoImporter(sample_config, candidate_finder=only(Volume(card_root))).run(dry_run=True)

        assert stats.dry_run
        assert stats.planned == 2
        assert stats.folders_created == 2
        assert stats.moved == 0
        assert source.exists()
        assert list(library_root.iterdir()) == []

    def test_dry_run_from_config(self, write_config, card_root, library_root, create_image):
        config = Config(str(write_config({'photo_import.dry_run': True})))
        create_image(card_root / 'DCIM' / 'a.jpg')

        stats = PhotoImporter(config, candidate_finder=only(Volume(card_root))).run()

        assert stats.dry_run
        assert list(library_root.iterdir()) == []
